#!/usr/bin/env python3
"""
Command line client for the Bitlum exchange.

Usage:
    python -m bitlum.cli <command> [args] [options]

Examples:
    python -m bitlum.cli markets BTCETH BTCLTC
    python -m bitlum.cli depth BTCETH --limit 20
    python -m bitlum.cli accounts BTC ETH
    python -m bitlum.cli order create BTCETH 0.5 --side ask
    python -m bitlum.cli lightning invoice BTC 0.001
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import NoReturn

import click

from bitlum import config as cfg
from bitlum import output as out
from bitlum import telemetry
from bitlum._version import VERSION
from bitlum.client import Client, new_client
from bitlum.errors import ApplicationError, BitlumError


# =============================================================================
# CLI Context
# =============================================================================


class Context:
    """CLI context holding configuration and the exchange client."""

    def __init__(self):
        self.url: str = cfg.DEFAULT_URL
        self.macaroon: str = ""
        self.token: str = ""
        self.output_format: str = "table"
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        if self._client is None:
            try:
                self._client = new_client(self.url, macaroon=self.macaroon, token=self.token)
            except BitlumError as e:
                out.error(str(e))
                out.info("Set a macaroon or token with 'bitlum config set' or --macaroon/--token.")
                raise SystemExit(1)
        return self._client


pass_context = click.make_pass_decorator(Context, ensure=True)


class DecimalType(click.ParamType):
    """Monetary amount parsed without float rounding."""

    name = "decimal"

    def convert(self, value, param, ctx):
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(value)
        except InvalidOperation:
            self.fail(f"{value!r} is not a valid decimal", param, ctx)


DECIMAL = DecimalType()


def fail(e: BitlumError) -> NoReturn:
    """Report a client error and exit with code 1."""
    out.error(str(e))
    if isinstance(e, ApplicationError) and e.data:
        out.info("Partial result:")
        out.info(out.format_output(e.data, "json"))
    raise SystemExit(1)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if telemetry.setup_telemetry():
        # Attach OTLP handler to root logger for log export
        handler = telemetry.get_log_handler()
        if handler:
            logging.getLogger().addHandler(handler)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(VERSION, prog_name="bitlum")
@click.option("--url", "-u", envvar="BITLUM_URL", default=None, help="GraphQL endpoint URL (overrides config)")
@click.option("--macaroon", "-m", envvar="BITLUM_MACAROON", default=None, help="Hex-encoded macaroon (overrides config)")
@click.option("--token", "-t", envvar="BITLUM_TOKEN", default=None, help="Bearer token, takes precedence over macaroon")
@click.option(
    "--output", "-o",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format",
)
@click.option("--verbose", "-v", is_flag=True, help="Log requests")
@pass_context
def cli(
    ctx: Context,
    url: str | None,
    macaroon: str | None,
    token: str | None,
    output: str,
    verbose: bool,
):
    """Command line client for the Bitlum exchange."""
    setup_logging(verbose)
    config = cfg.load_config()
    ctx.url = url or config.get("url", cfg.DEFAULT_URL)
    ctx.macaroon = macaroon or config.get("macaroon", "")
    ctx.token = token or config.get("token", "")
    ctx.output_format = output


# =============================================================================
# Config Commands
# =============================================================================


@cli.command("config")
@click.argument("action", required=False, type=click.Choice(["show", "set"]))
@click.argument("args", nargs=-1)
def config_cmd(action: str | None, args: tuple):
    """Manage CLI configuration.

    Without arguments: interactive setup.

    \b
    Examples:
        bitlum config              # Interactive setup
        bitlum config show         # Show current config
        bitlum config set url https://api.bitlum.io/graphql
    """
    if action is None:
        config_path = cfg.find_config()
        if config_path:
            out.info(f"Config file found: {config_path}")
            current = cfg.load_config()
        else:
            out.info("No config file found. Creating new config.")
            current = cfg.get_default_config()

        url = click.prompt("Exchange GraphQL URL", default=current.get("url", cfg.DEFAULT_URL))
        macaroon = click.prompt(
            "Macaroon (hex)", default=current.get("macaroon", ""), show_default=False
        )
        token = click.prompt(
            "Bearer token", default=current.get("token", ""), show_default=False
        )

        save_path = cfg.save_config({"url": url, "macaroon": macaroon, "token": token})
        out.success(f"Configuration saved to {save_path}")

    elif action == "show":
        config_path = cfg.find_config()
        if config_path is None:
            out.info("No configuration file found.")
            out.info("Run 'bitlum config' to create one.")
            return

        config = cfg.load_config()
        out.info(f"Config file: {config_path}")
        out.info("")
        for key, value in cfg.masked(config).items():
            out.info(f"  {key}: {value}")

    elif action == "set":
        if len(args) != 2:
            out.error("Usage: bitlum config set <key> <value>")
            raise SystemExit(1)

        key, value = args
        valid_keys = set(cfg.get_default_config())
        if key not in valid_keys:
            out.error(f"Unknown config key: {key}")
            out.info(f"Valid keys: {', '.join(sorted(valid_keys))}")
            raise SystemExit(1)

        config = cfg.load_config()
        config[key] = value
        save_path = cfg.save_config(config)
        out.success(f"Set {key}")
        out.info(f"Saved to {save_path}")


# =============================================================================
# Market Data Commands
# =============================================================================


@cli.command("markets")
@click.argument("markets", nargs=-1)
@click.option("--period", type=int, default=86400, help="Period in seconds")
@pass_context
def markets_cmd(ctx: Context, markets: tuple, period: int):
    """Show market statuses (all supported markets by default)."""
    names = list(markets) or ctx.client.supported_markets()
    try:
        statuses = ctx.client.markets(names, period)
    except BitlumError as e:
        fail(e)
    columns = [
        ("market", "Market", 8),
        ("last", "Last", 14),
        ("change_last", "Change %", 10),
        ("high", "High", 14),
        ("low", "Low", 14),
        ("volume", "Volume", 16),
        ("best_ask", "Best Ask", 14),
        ("best_bid", "Best Bid", 14),
    ]
    out.output(statuses, ctx.output_format, columns)


@cli.command("tickers")
@click.argument("markets", nargs=-1, required=True)
@pass_context
def tickers_cmd(ctx: Context, markets: tuple):
    """Show last price of markets."""
    try:
        tickers = ctx.client.tickers(list(markets))
    except BitlumError as e:
        fail(e)
    columns = [
        ("market", "Market", 8),
        ("last", "Last", 14),
        ("change_last", "Change %", 10),
    ]
    out.output(tickers, ctx.output_format, columns)


@cli.command("depth")
@click.argument("market")
@click.option("--limit", type=click.IntRange(min=0), default=50, help="Levels per side")
@click.option("--interval", type=float, default=0.00000001, help="Price aggregation interval")
@pass_context
def depth_cmd(ctx: Context, market: str, limit: int, interval: float):
    """Show order book depth of a market."""
    try:
        depth = ctx.client.depth(market, limit, interval)
    except BitlumError as e:
        fail(e)

    if ctx.output_format != "table":
        out.output(depth, ctx.output_format)
        return

    columns = [("price", "Price", 16), ("volume", "Volume", 16)]
    out.info("Asks:")
    out.output(depth.asks, "table", columns)
    out.info("\nBids:")
    out.output(depth.bids, "table", columns)


@cli.command("deals")
@click.argument("markets", nargs=-1, required=True)
@click.option("--limit", type=int, default=20, help="Number of deals")
@pass_context
def deals_cmd(ctx: Context, markets: tuple, limit: int):
    """Show recent deals on markets."""
    try:
        deals = ctx.client.deals(list(markets), limit)
    except BitlumError as e:
        fail(e)
    columns = [
        ("id", "ID", 10),
        ("market", "Market", 8),
        ("type", "Type", 5),
        ("price", "Price", 14),
        ("amount", "Amount", 14),
        ("time", "Time", 18),
    ]
    out.output(deals, ctx.output_format, columns)


@cli.command("info")
@pass_context
def info_cmd(ctx: Context):
    """Show exchange service information."""
    try:
        info = ctx.client.info()
    except BitlumError as e:
        fail(e)
    out.output(info, ctx.output_format)


# =============================================================================
# User & Account Commands
# =============================================================================


@cli.command("me")
@pass_context
def me_cmd(ctx: Context):
    """Show the user the credentials belong to."""
    try:
        me = ctx.client.me()
    except BitlumError as e:
        fail(e)
    out.output(me, ctx.output_format)


@cli.command("accounts")
@click.argument("assets", nargs=-1, required=True)
@pass_context
def accounts_cmd(ctx: Context, assets: tuple):
    """Show balances of assets."""
    try:
        accounts = ctx.client.accounts(list(assets))
    except BitlumError as e:
        fail(e)
    columns = [
        ("asset", "Asset", 6),
        ("available", "Available", 16),
        ("freezed", "Freezed", 16),
        ("estimation", "Est. USD", 12),
        ("address", "Deposit Address", 42),
    ]
    out.output(accounts, ctx.output_format, columns)


@cli.command("deposits")
@click.argument("asset")
@click.option("--offset", type=int, default=0, help="Offset in balance history")
@click.option("--limit", type=int, default=20, help="Number of deposits")
@pass_context
def deposits_cmd(ctx: Context, asset: str, offset: int, limit: int):
    """Show deposits of an asset."""
    try:
        deposits = ctx.client.deposits(asset, offset, limit)
    except BitlumError as e:
        fail(e)
    columns = [
        ("payment_id", "Payment ID", 66),
        ("payment_type", "Type", 10),
        ("change", "Change", 14),
        ("time", "Time", 18),
    ]
    out.output(deposits, ctx.output_format, columns)


@cli.command("issue-token")
@pass_context
def issue_token_cmd(ctx: Context):
    """Exchange the bearer token for a macaroon API token."""
    try:
        token = ctx.client.issue_api_token()
    except BitlumError as e:
        fail(e)
    out.info(token)


# =============================================================================
# Order Commands
# =============================================================================


@cli.group()
def order():
    """Manage orders."""
    pass


@order.command("show")
@click.argument("order_id", type=int)
@pass_context
def order_show(ctx: Context, order_id: int):
    """Show order details."""
    try:
        data = ctx.client.order(order_id)
    except BitlumError as e:
        fail(e)
    out.output(data, ctx.output_format)


@order.command("create")
@click.argument("market")
@click.argument("amount", type=DECIMAL)
@click.option("--side", type=click.Choice(["ask", "bid"]), default="bid", help="Order side")
@pass_context
def order_create(ctx: Context, market: str, amount: Decimal, side: str):
    """Place a market order."""
    try:
        if side == "ask":
            result = ctx.client.create_order_ask(market, amount)
        else:
            result = ctx.client.create_order_bid(market, amount)
    except BitlumError as e:
        fail(e)
    out.success(f"Order placed: {result.id}")
    out.output(result, ctx.output_format)


# =============================================================================
# Withdrawal Commands
# =============================================================================


@cli.command("withdraw")
@click.argument("asset")
@click.argument("amount", type=DECIMAL)
@click.argument("address")
@pass_context
def withdraw_cmd(ctx: Context, asset: str, amount: Decimal, address: str):
    """Withdraw funds to a blockchain address."""
    try:
        withdrawal = ctx.client.withdraw(asset, amount, address)
    except BitlumError as e:
        fail(e)
    out.success(f"Withdrawal sent: {withdrawal.payment_id}")
    out.output(withdrawal, ctx.output_format)


# =============================================================================
# Lightning Commands
# =============================================================================


@cli.group()
def lightning():
    """Lightning network payments."""
    pass


@lightning.command("invoice")
@click.argument("asset")
@click.argument("amount", type=DECIMAL)
@pass_context
def lightning_invoice(ctx: Context, asset: str, amount: Decimal):
    """Create an invoice to deposit funds."""
    try:
        invoice = ctx.client.lightning_create_invoice(asset, amount)
    except BitlumError as e:
        fail(e)
    out.info(invoice)


@lightning.command("withdraw")
@click.argument("asset")
@click.argument("invoice")
@pass_context
def lightning_withdraw(ctx: Context, asset: str, invoice: str):
    """Withdraw funds by paying an invoice."""
    try:
        withdrawal = ctx.client.lightning_withdraw(asset, invoice)
    except BitlumError as e:
        fail(e)
    out.success(f"Invoice paid: {withdrawal.payment_id}")


@lightning.command("reachable")
@click.argument("asset")
@click.argument("identity_key")
@pass_context
def lightning_reachable(ctx: Context, asset: str, identity_key: str):
    """Check that a node can be reached from the exchange node."""
    try:
        reachable = ctx.client.lightning_node_reachable(asset, identity_key)
    except BitlumError as e:
        fail(e)
    if reachable:
        out.success(f"Node {identity_key} is reachable")
    else:
        out.error(f"Node {identity_key} is not reachable")
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
