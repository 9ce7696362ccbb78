"""Tests for terminal rendering of exchange results."""

import json
from decimal import Decimal

from bitlum import config as cfg
from bitlum.output import format_output
from bitlum.schemas import Info, LightningNodeInfo, MarketDeal, MarketStatus, Order

DEAL_COLUMNS = [("id", "ID", 10), ("price", "Price", 12), ("time", "Time", 19)]


class TestTable:
    def test_ids_not_grouped(self):
        """Order and deal IDs are printed as plain digits."""
        table = format_output([MarketDeal(id=1234567)], "table", DEAL_COLUMNS)

        assert "1234567" in table
        assert "1,234,567" not in table

    def test_amounts_fixed_point(self):
        table = format_output(
            [MarketDeal(id=1, price=Decimal("0.00000001"))], "table", DEAL_COLUMNS
        )

        assert "0.00000001" in table
        assert "E-8" not in table

    def test_timestamps(self):
        table = format_output([MarketDeal(time=1539865800.5)], "table", DEAL_COLUMNS)

        assert "2018-10-18 12:30:00" in table

    def test_empty(self):
        assert format_output([], "table", DEAL_COLUMNS) == "No data found."

    def test_default_columns(self):
        table = format_output([MarketDeal(id=3, market="BTCETH")], "table")

        header = table.splitlines()[0]
        assert header.split() == ["id", "market", "time", "amount", "price", "type"]


class TestRecord:
    def test_nested_fields_dotted(self):
        info = Info(network="simnet", lightning=LightningNodeInfo(alias="bitlum", synced_to_chain=True))

        text = format_output(info, "table")

        rows = [line.split() for line in text.splitlines()]
        assert ["network", "simnet"] in rows
        assert ["lightning.alias", "bitlum"] in rows
        assert ["lightning.synced_to_chain", "yes"] in rows

    def test_json_amounts(self):
        order = Order(id=9, amount=Decimal("1E-8"))

        data = json.loads(format_output(order, "json"))

        assert data["id"] == 9
        assert data["amount"] == "0.00000001"

    def test_json_list(self):
        statuses = [MarketStatus(market="BTCETH", last=Decimal("0.031"))]

        data = json.loads(format_output(statuses, "json"))

        assert data[0]["market"] == "BTCETH"
        assert data[0]["last"] == "0.031"


def test_masked_config():
    config = {"url": "http://x", "macaroon": "0201", "token": ""}

    assert cfg.masked(config) == {"url": "http://x", "macaroon": "********", "token": ""}
