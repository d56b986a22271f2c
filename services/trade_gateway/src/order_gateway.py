"""Authenticated order placement, cancellation and queries.

Every operation in this module is a write or authenticated path and goes
through SessionManager.ensure_ready() first; nothing here talks to the
exchange without a ready TradingSession. The exchange client is blocking,
so each call runs in a worker thread to keep the event loop free.

No local validation of price or size ranges is performed beyond the
types: the exchange is the source of truth for rejections, and both its
exceptions and its acknowledgement payloads are handed back to the caller
unchanged.

Example:
    >>> gateway = OrderGateway(SessionManager())
    >>> result = await gateway.place_order(token_id, 0.54, 100, Side.BUY)
    >>> await gateway.cancel_order(result['orderID'])
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from py_clob_client.clob_types import OpenOrderParams, OrderArgs, PartialCreateOrderOptions

from order_book import Side
from session_manager import SessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderRequest:
    """Limit order as submitted to the exchange.

    Attributes:
        token_id (str): Token (market outcome) to trade.
        price (float): Limit price, expected in (0, 1).
        size (float): Number of shares, expected > 0.
        side (Side): BUY or SELL.
        neg_risk (bool): Whether the market uses the negative-risk
            exchange contract.
    """

    token_id: str
    price: float
    size: float
    side: Side
    neg_risk: bool = False

    def to_order_args(self) -> OrderArgs:
        return OrderArgs(
            token_id=self.token_id,
            price=self.price,
            size=self.size,
            side=self.side.value,
        )


class OrderGateway:
    """Order operations against the exchange.

    Attributes:
        session_manager (SessionManager): Provides the authenticated client.
        orders_placed (int): Orders submitted (accepted or not).
        orders_cancelled (int): Cancel requests submitted.
        queries (int): Open-order queries issued.
    """

    def __init__(self, session_manager: SessionManager):
        self.session_manager = session_manager
        self.orders_placed = 0
        self.orders_cancelled = 0
        self.queries = 0

    async def _client(self):
        session = await self.session_manager.ensure_ready()
        return session.client

    async def place_order(self, token_id: str, price: float, size: float, side,
                          neg_risk: bool = False) -> Any:
        """Sign and submit a limit order.

        Args:
            token_id: Token to trade.
            price: Limit price.
            size: Number of shares.
            side: Side.BUY / Side.SELL, or 'buy' / 'sell'.
            neg_risk: Submit against the negative-risk exchange contract.

        Returns:
            The exchange's order acknowledgement, unmodified.

        Raises:
            SessionError: No trading session could be established.
            Exception: Any rejection raised by the exchange client.
        """
        request = OrderRequest(
            token_id=str(token_id),
            price=float(price),
            size=float(size),
            side=Side.parse(side),
            neg_risk=bool(neg_risk),
        )
        client = await self._client()

        self.orders_placed += 1
        result = await asyncio.to_thread(
            client.create_and_post_order,
            request.to_order_args(),
            PartialCreateOrderOptions(neg_risk=request.neg_risk),
        )
        logger.info(
            "[Orders] %s %s @ %s on %s -> %s",
            request.side.value, request.size, request.price, request.token_id, result
        )
        return result

    async def cancel_order(self, order_id: str) -> Any:
        """Cancel one order by id and return the exchange's response."""
        client = await self._client()

        self.orders_cancelled += 1
        result = await asyncio.to_thread(client.cancel, order_id)
        logger.info("[Orders] Cancel %s -> %s", order_id, result)
        return result

    async def cancel_all_orders(self) -> Any:
        """Cancel every open order of the session's account."""
        client = await self._client()

        self.orders_cancelled += 1
        result = await asyncio.to_thread(client.cancel_all)
        logger.info("[Orders] Cancel all -> %s", result)
        return result

    async def list_open_orders(self, market: Optional[str] = None,
                               asset_id: Optional[str] = None) -> List[Any]:
        """Return the account's open orders, optionally filtered.

        Args:
            market: Condition id to filter by.
            asset_id: Token id to filter by.
        """
        client = await self._client()

        self.queries += 1
        params = OpenOrderParams(market=market, asset_id=asset_id)
        orders = await asyncio.to_thread(client.get_orders, params)
        orders = list(orders or [])
        logger.info("[Orders] %d open orders", len(orders))
        return orders

    def get_stats(self):
        return {
            'orders_placed': self.orders_placed,
            'orders_cancelled': self.orders_cancelled,
            'queries': self.queries
        }
