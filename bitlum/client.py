"""Client for the Bitlum exchange GraphQL API.

Every operation sends a static GraphQL document with typed variables
through the transport and decodes the typed ``data`` of the response.
When the exchange reports errors, the raised ``ApplicationError``
carries whatever part of the result did decode in ``.data``.
"""

import logging
from decimal import Decimal
from typing import Any, TypeVar

import httpx

from bitlum.auth import BearerCredential, Credential, MacaroonCredential, decode_macaroon
from bitlum.core import GraphQLTransport, Transport
from bitlum.envelope import GraphQLRequest, ResponseModel, decode_response
from bitlum.errors import ApplicationError, BitlumError, DecodingError, InvalidCredentialError
from bitlum.schemas import (
    Account,
    AccountsData,
    AccountsVariables,
    CreateOrderData,
    CreateOrderVariables,
    DealsData,
    DealsVariables,
    Deposit,
    DepositsData,
    DepositsVariables,
    Depth,
    DepthData,
    DepthVariables,
    Info,
    InfoData,
    InvoiceData,
    IssueApiTokenData,
    LightningCreateInvoiceVariables,
    LightningWithdrawData,
    LightningWithdrawVariables,
    MarketDeal,
    MarketSide,
    MarketStatus,
    MarketsData,
    MarketsVariables,
    Me,
    MeData,
    Order,
    OrderData,
    OrderVariables,
    ReachableData,
    ReachableVariables,
    Ticker,
    TickersData,
    TickersVariables,
    WithdrawData,
    WithdrawVariables,
    Withdrawal,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ResponseModel)

EXCHANGE_ID = "bitlum"

# TODO: request the list from the exchange once it exposes one
SUPPORTED_MARKETS = ["BTCETH", "BTCBCH", "BTCDASH", "BTCLTC"]


# ============================================================================
# GraphQL documents
# ============================================================================

ME_QUERY = """
query Me {
  me {
    id
    email
  }
}
"""

USER_ID_QUERY = """
query Me {
  me {
    id
  }
}
"""

TICKERS_QUERY = """
query GetMarketInfo($markets: [Market!]) {
  markets(markets: $markets) {
    market
    last
    changeLast
  }
}
"""

DEPTH_QUERY = """
query GetBestAskBid($market: Market!, $limit: Int, $interval: Float) {
  depth(market: $market, limit: $limit, interval: $interval) {
    asks {
      price
      volume
    }
    bids {
      price
      volume
    }
  }
}
"""

DEPOSITS_QUERY = """
query GetBalanceUpdates($assets: [Asset!]!, $offset: Int!, $limit: Int!) {
  balanceUpdateRecords(assets: $assets, offset: $offset,
      recordTypes: deposit, limit: $limit) {
    ... on Deposit {
      change
      time
      paymentID
      paymentType
    }
  }
}
"""

ORDER_QUERY = """
query GetOrder($id: Int!) {
  order(id: $id) {
    id
    status
    dealStock
    dealMoney
    amount
    price
  }
}
"""

CREATE_ORDER_MUTATION = """
mutation CreateMarketOrder($market: Market!, $amount: String!, $side: MarketSide!) {
  createMarketOrder(amount: $amount, market: $market, side: $side) {
    id
    status
    amount
    price
    dealStock
    dealMoney
    left
  }
}
"""

WITHDRAW_MUTATION = """
mutation Withdraw($asset: Asset!, $amount: String!, $address: String!) {
  withdrawWithBlockchain(asset: $asset, amount: $amount, address: $address) {
    ... on Withdrawal {
      paymentID
      paymentAddr
      change
    }
  }
}
"""

REACHABLE_QUERY = """
query CheckReachable($asset: Asset!, $identityKey: String!) {
  checkReachable(asset: $asset, identityKey: $identityKey)
}
"""

INFO_QUERY = """
query Info {
  info {
    network
    time
    lightning {
      host
      port
      minAmount
      maxAmount
      identityPubkey
      alias
      numPendingChannels
      numActiveChannels
      numPeers
      blockHeight
      blockHash
      syncedToChain
      asset
    }
  }
}
"""

LIGHTNING_INVOICE_MUTATION = """
mutation GenerateLightningInvoice($asset: Asset!, $amount: String!) {
  generateLightningInvoice(asset: $asset, amount: $amount)
}
"""

LIGHTNING_WITHDRAW_MUTATION = """
mutation Withdraw($asset: Asset!, $invoice: String!) {
  withdrawWithLightning(asset: $asset, invoice: $invoice) {
    ... on Withdrawal {
      paymentID
    }
  }
}
"""

ACCOUNTS_QUERY = """
query Accounts($assets: [Asset!]!) {
  accounts(assets: $assets) {
    asset
    address
    available
    estimation
    freezed
    pending {
      amount
      transactions {
        confirmationsLeft
        confirmations
        address
        amount
        txid
      }
    }
  }
}
"""

ISSUE_API_TOKEN_QUERY = """
query { issueApiToken }
"""

MARKETS_QUERY = """
query Markets($markets: [Market!]!, $period: Int) {
  markets(markets: $markets, period: $period) {
    market
    stock
    money
    open
    close
    high
    last
    low
    volume
    changeLast
    changeHigh
    changeLow
    bestAsk
    bestBid
  }
}
"""

DEALS_QUERY = """
query Deals($markets: [Market!]!, $limit: Int) {
  deals(markets: $markets, limit: $limit) {
    id
    market
    time
    amount
    price
    type
  }
}
"""


# ============================================================================
# Client
# ============================================================================


class Client:
    """Bitlum exchange client wrapping the raw GraphQL API."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the transport's connections."""
        self.transport.close()

    def _execute(
        self,
        authenticated: bool,
        query: str,
        variables: Any,
        model: type[T],
        field: str,
    ) -> Any:
        """Run a GraphQL document and return ``field`` of the decoded data.

        Raises:
            TransportError: Request was not delivered or answered with 200
            CredentialError: Authorization could not be derived
            DecodingError: Response did not match ``model``
            ApplicationError: Exchange returned errors; ``.data`` holds
                the partially decoded ``field``
        """
        request = GraphQLRequest(query=query, variables=variables)

        try:
            body = self.transport.do(authenticated, request)
        except BitlumError as e:
            e.args = (f"failed to do request: {e}",)
            raise

        try:
            data, error = decode_response(body, model)
        except DecodingError as e:
            raise DecodingError(f"failed to decode response: {e}") from e

        result = getattr(data, field)
        if error is not None:
            logger.debug(f"Exchange returned {len(error.errors)} error(s): {error}")
            raise ApplicationError(f"exchange error: {error}", errors=error.errors, data=result)

        return result

    @property
    def id(self) -> str:
        """Exchange ID."""
        return EXCHANGE_ID

    def supported_markets(self) -> list[str]:
        """Markets supported by the exchange."""
        return list(SUPPORTED_MARKETS)

    # --- User ---

    def me(self) -> Me:
        """User on behalf of which all exchange operations are performed."""
        return self._execute(True, ME_QUERY, None, MeData, "me")

    def user_id(self) -> str:
        """ID of the user on behalf of which all operations are performed."""
        me = self._execute(True, USER_ID_QUERY, None, MeData, "me")
        return me.id

    # --- Market data ---

    def tickers(self, markets: list[str]) -> list[Ticker]:
        """Last price and its change for each of ``markets``."""
        if not markets:
            raise ValueError("not empty markets expected")
        return self._execute(
            False, TICKERS_QUERY, TickersVariables(markets=markets), TickersData, "markets"
        )

    def depth(self, market: str, limit: int, interval: float) -> Depth:
        """Limited lists of asks and bids in benefit order."""
        variables = DepthVariables(market=market, limit=limit, interval=interval)
        return self._execute(False, DEPTH_QUERY, variables, DepthData, "depth")

    def markets(self, markets: list[str], period: int) -> list[MarketStatus]:
        """Statuses of ``markets`` over the last ``period`` seconds."""
        variables = MarketsVariables(markets=markets, period=period)
        return self._execute(False, MARKETS_QUERY, variables, MarketsData, "markets")

    def deals(self, markets: list[str], limit: int) -> list[MarketDeal]:
        """Most recent deals, i.e. matched opposite orders, on ``markets``."""
        variables = DealsVariables(markets=markets, limit=limit)
        return self._execute(False, DEALS_QUERY, variables, DealsData, "deals")

    def info(self) -> Info:
        """General information about service state and configuration."""
        return self._execute(False, INFO_QUERY, None, InfoData, "info")

    # --- Orders ---

    def order(self, id: int) -> Order:
        """Order with the given ID."""
        return self._execute(True, ORDER_QUERY, OrderVariables(id=id), OrderData, "order")

    def _create_order(self, market: str, amount: Decimal, side: MarketSide) -> Order:
        variables = CreateOrderVariables(market=market, amount=amount, side=side)
        return self._execute(True, CREATE_ORDER_MUTATION, variables, CreateOrderData, "order")

    def create_order(self, market: str, amount: Decimal) -> Order:
        """Alias of ``create_order_bid``."""
        return self.create_order_bid(market, amount)

    def create_order_ask(self, market: str, amount: Decimal) -> Order:
        """Create a market order selling stock for money.

        E.g. in BTCETH this sells ETH for BTC.
        """
        return self._create_order(market, amount, MarketSide.ASK)

    def create_order_bid(self, market: str, amount: Decimal) -> Order:
        """Create a market order buying stock with money.

        E.g. in BTCETH this buys ETH using BTC.
        """
        return self._create_order(market, amount, MarketSide.BID)

    # --- Accounts & payments ---

    def accounts(self, assets: list[str]) -> list[Account]:
        """Balances of ``assets`` owned by the user."""
        variables = AccountsVariables(assets=assets)
        return self._execute(True, ACCOUNTS_QUERY, variables, AccountsData, "accounts")

    def deposits(self, asset: str, offset: int, limit: int) -> list[Deposit]:
        """Deposits of ``asset`` within offset/limit of the balance history."""
        variables = DepositsVariables(assets=[asset], offset=offset, limit=limit)
        return self._execute(True, DEPOSITS_QUERY, variables, DepositsData, "deposits")

    def withdraw(self, asset: str, amount: Decimal, address: str) -> Withdrawal:
        """Withdraw funds to a blockchain ``address``."""
        variables = WithdrawVariables(asset=asset, amount=amount, address=address)
        return self._execute(True, WITHDRAW_MUTATION, variables, WithdrawData, "withdrawal")

    def lightning_node_reachable(self, asset: str, identity_pub_key: str) -> bool:
        """Whether the exchange lightning node can reach the given node."""
        variables = ReachableVariables(asset=asset, identity_pub_key=identity_pub_key)
        return self._execute(False, REACHABLE_QUERY, variables, ReachableData, "reachable")

    def lightning_create_invoice(self, asset: str, amount: Decimal) -> str:
        """Create a lightning invoice which deposits ``amount`` when paid."""
        variables = LightningCreateInvoiceVariables(asset=asset, amount=amount)
        return self._execute(True, LIGHTNING_INVOICE_MUTATION, variables, InvoiceData, "invoice")

    def lightning_withdraw(self, asset: str, invoice: str) -> Withdrawal:
        """Withdraw funds by paying a lightning ``invoice``."""
        variables = LightningWithdrawVariables(asset=asset, invoice=invoice)
        return self._execute(
            True, LIGHTNING_WITHDRAW_MUTATION, variables, LightningWithdrawData, "withdrawal"
        )

    def issue_api_token(self) -> str:
        """Exchange the user's JWT for a hex-encoded macaroon API token."""
        return self._execute(True, ISSUE_API_TOKEN_QUERY, None, IssueApiTokenData, "issue_api_token")


def new_client(
    url: str,
    macaroon: str = "",
    token: str = "",
    http_client: httpx.Client | None = None,
) -> Client:
    """Create a client for the exchange GraphQL endpoint at ``url``.

    Args:
        url: GraphQL endpoint URL
        macaroon: Hex-encoded binary macaroon
        token: Bearer (JWT) token; takes precedence over ``macaroon``
        http_client: Optional httpx client to send requests with

    Raises:
        InvalidCredentialError: If the macaroon can't be decoded or no
            credential is given.
    """
    root = decode_macaroon(macaroon) if macaroon else None

    credential: Credential
    if token:
        credential = BearerCredential(token)
    elif root is not None:
        credential = MacaroonCredential(root)
    else:
        raise InvalidCredentialError("either macaroon or token is required")

    return Client(GraphQLTransport(url, credential, http_client=http_client))
