"""Pydantic schemas for exchange operation variables and results.

Result models decode leniently: every field has a default, and JSON
``null`` reads as the default, so a partially populated ``data`` object
still decodes.
"""

import enum
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from bitlum.envelope import ResponseModel


def format_money(value: Decimal) -> str:
    """Fixed-point rendering of an amount, e.g. 0.00000001 rather than 1E-8."""
    return format(value, "f")


# Amounts travel as decimal strings in fixed-point notation
Money = Annotated[Decimal, PlainSerializer(format_money, return_type=str, when_used="json")]


class MarketSide(str, enum.Enum):
    """Side of a market order."""

    ASK = "ask"  # sell stock for money
    BID = "bid"  # buy stock with money


class Variables(BaseModel):
    """Base for query variables; serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Query variables
# ============================================================================


class TickersVariables(Variables):
    markets: list[str]


class DepthVariables(Variables):
    market: str
    limit: int
    interval: float


class DepositsVariables(Variables):
    assets: list[str]
    offset: int
    limit: int


class OrderVariables(Variables):
    id: int


class CreateOrderVariables(Variables):
    market: str
    amount: Money
    side: MarketSide


class WithdrawVariables(Variables):
    asset: str
    amount: Money
    address: str


class ReachableVariables(Variables):
    asset: str
    identity_pub_key: str = Field(..., alias="identityKey")


class LightningCreateInvoiceVariables(Variables):
    asset: str
    amount: Money


class LightningWithdrawVariables(Variables):
    asset: str
    invoice: str


class AccountsVariables(Variables):
    assets: list[str]


class MarketsVariables(Variables):
    markets: list[str]
    period: int


class DealsVariables(Variables):
    markets: list[str]
    limit: int


# ============================================================================
# User schemas
# ============================================================================


class Me(ResponseModel):
    """User on behalf of which all exchange operations are performed."""

    id: str = ""
    # Email used at registration, or of the user who requested the macaroon
    email: str = ""


# ============================================================================
# Market data schemas
# ============================================================================


class Ticker(ResponseModel):
    """Last price summary of a market."""

    market: str = ""
    last: Money = Decimal(0)
    change_last: Money = Decimal(0)


class Ask(ResponseModel):
    """Order to sell stock (right asset) for money (left asset).

    E.g. an ask in BTCETH sells ETH for BTC.
    """

    price: Money = Decimal(0)
    volume: Money = Decimal(0)


class Bid(ResponseModel):
    """Order to buy stock (right asset) with money (left asset).

    E.g. a bid in BTCETH buys ETH using BTC.
    """

    price: Money = Decimal(0)
    volume: Money = Decimal(0)


class Depth(ResponseModel):
    """Limited lists of asks and bids in benefit order."""

    asks: list[Ask] = Field(default_factory=list)  # by increasing price
    bids: list[Bid] = Field(default_factory=list)  # by decreasing price


class MarketStatus(ResponseModel):
    """Status of a market over the requested period.

    Changes are percentages relative to the open price. Volume is
    measured in market money.
    """

    market: str = ""
    stock: str = ""
    money: str = ""
    open: Money = Decimal(0)
    close: Money = Decimal(0)
    high: Money = Decimal(0)
    last: Money = Decimal(0)
    low: Money = Decimal(0)
    volume: Money = Decimal(0)
    change_last: Money = Decimal(0)
    change_high: Money = Decimal(0)
    change_low: Money = Decimal(0)
    best_ask: Money = Decimal(0)
    best_bid: Money = Decimal(0)


class MarketDeal(ResponseModel):
    """Result of matching two opposite orders."""

    id: int = 0
    market: str = ""
    time: float = 0.0
    amount: Money = Decimal(0)
    price: Money = Decimal(0)
    type: str = ""  # "ask" or "bid"


# ============================================================================
# Order schemas
# ============================================================================


class Order(ResponseModel):
    """Exchange order to buy or sell stock.

    In a market the left asset is money and the right one is stock,
    e.g. in BTCLTC BTC is money and LTC is stock.
    """

    id: int = 0
    status: str = ""  # pending, finished or canceled
    # Money or stock depending on the order side
    amount: Money = Decimal(0)
    price: Money = Decimal(0)
    deal_money: Money = Decimal(0)
    deal_stock: Money = Decimal(0)
    # Funds left in the market without being handled
    left: Money = Decimal(0)


# ============================================================================
# Payment schemas
# ============================================================================


class Deposit(ResponseModel):
    """Account deposit."""

    # Transaction ID in blockchain, payment hash in lightning network
    payment_id: str = Field("", alias="paymentID")
    payment_type: str = ""
    change: Money = Decimal(0)
    time: float = 0.0


class Withdrawal(ResponseModel):
    """Account withdrawal."""

    # Transaction ID in blockchain, payment hash in lightning network
    payment_id: str = Field("", alias="paymentID")
    # Receiver address in blockchain; meaningless in lightning network
    payment_addr: str = ""
    change: Money = Decimal(0)


class LightningNodeInfo(ResponseModel):
    """Exchange lightning network node."""

    host: str = ""
    port: str = ""
    min_amount: Money = Decimal(0)
    max_amount: Money = Decimal(0)
    identity_pubkey: str = ""
    alias: str = ""
    num_pending_channels: int = 0
    num_active_channels: int = 0
    num_peers: int = 0
    block_height: int = 0
    block_hash: str = ""
    synced_to_chain: bool = False
    asset: str = ""


class Info(ResponseModel):
    """General service state and configuration."""

    network: str = ""
    time: str = ""
    lightning: LightningNodeInfo | None = None


# ============================================================================
# Account schemas
# ============================================================================


class Transaction(ResponseModel):
    """Blockchain transaction waiting for confirmations."""

    confirmations_left: int = 0
    confirmations: int = 0
    address: str = ""
    amount: Money = Decimal(0)
    tx_id: str = Field("", alias="txid")


class PendingInfo(ResponseModel):
    """Funds awaiting blockchain confirmation before being enrolled."""

    amount: Money = Decimal(0)
    transactions: list[Transaction] = Field(default_factory=list)


class Account(ResponseModel):
    """Balance of a single asset owned by the user."""

    asset: str = ""
    # Deposit address; empty if one has to be created first
    address: str = ""
    available: Money = Decimal(0)
    # Estimated value in dollars
    estimation: Money = Decimal(0)
    # Funds currently occupied in trades
    freezed: Money = Decimal(0)
    pending: PendingInfo = Field(default_factory=PendingInfo)


# ============================================================================
# Response data shapes
# ============================================================================


class MeData(ResponseModel):
    me: Me = Field(default_factory=Me)


class TickersData(ResponseModel):
    markets: list[Ticker] = Field(default_factory=list)


class DepthData(ResponseModel):
    depth: Depth = Field(default_factory=Depth)


class DepositsData(ResponseModel):
    deposits: list[Deposit] = Field(default_factory=list, alias="balanceUpdateRecords")


class OrderData(ResponseModel):
    order: Order = Field(default_factory=Order)


class CreateOrderData(ResponseModel):
    order: Order = Field(default_factory=Order, alias="createMarketOrder")


class WithdrawData(ResponseModel):
    withdrawal: Withdrawal = Field(default_factory=Withdrawal, alias="withdrawWithBlockchain")


class LightningWithdrawData(ResponseModel):
    withdrawal: Withdrawal = Field(default_factory=Withdrawal, alias="withdrawWithLightning")


class ReachableData(ResponseModel):
    reachable: bool = Field(False, alias="checkReachable")


class InfoData(ResponseModel):
    info: Info = Field(default_factory=Info)


class InvoiceData(ResponseModel):
    invoice: str = Field("", alias="generateLightningInvoice")


class AccountsData(ResponseModel):
    accounts: list[Account] = Field(default_factory=list)


class IssueApiTokenData(ResponseModel):
    issue_api_token: str = ""


class MarketsData(ResponseModel):
    markets: list[MarketStatus] = Field(default_factory=list)


class DealsData(ResponseModel):
    deals: list[MarketDeal] = Field(default_factory=list)
