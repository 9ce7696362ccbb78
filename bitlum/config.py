"""Settings file for the bitlum CLI: endpoint URL and credentials, in YAML.

A ``.bitlum.yaml`` in the working directory wins over the per-user
``~/.bitlum/config.yaml``.
"""

from pathlib import Path

import yaml

CONFIG_FILENAME = ".bitlum.yaml"
USER_CONFIG_DIR = Path.home() / ".bitlum"

DEFAULT_URL = "https://api.bitlum.io/graphql"
SECRET_KEYS = ("macaroon", "token")


def config_paths() -> list[Path]:
    """Candidate config files, most specific first."""
    return [Path(CONFIG_FILENAME), USER_CONFIG_DIR / "config.yaml"]


def find_config() -> Path | None:
    return next((path for path in config_paths() if path.exists()), None)


def load_config() -> dict:
    """Settings from the first config file found, empty if there is none."""
    path = find_config()
    if path is None:
        return {}
    return yaml.safe_load(path.read_text()) or {}


def save_config(config: dict, path: Path | None = None) -> Path:
    """Write settings, by default to the working directory file.

    The file holds credentials, so only its owner may read it.
    """
    path = path or Path(CONFIG_FILENAME)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config, default_flow_style=False))
    path.chmod(0o600)
    return path


def get_default_config() -> dict:
    return {"url": DEFAULT_URL, "macaroon": "", "token": ""}


def masked(config: dict) -> dict:
    """Copy of ``config`` safe to print: credentials are starred out."""
    return {
        key: "********" if key in SECRET_KEYS and value else value
        for key, value in config.items()
    }
