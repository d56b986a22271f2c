#!/usr/bin/env python3
"""Main entry point for the Trade Gateway.

This service is the single seam between trading code and the prediction
market exchange:
1. Fetches order books over HTTP and normalizes them
2. Derives executable prices by walking book depth
3. Lazily establishes one authenticated trading session
4. Places, cancels and lists orders through that session

Architecture:
- Uses uvloop as the asyncio event loop
- Read path (books, quotes) needs no secret and never raises
- Write path (orders) funnels through the SessionManager and always
  propagates failures

Example:
    Quote a token and estimate a 100 share fill:
    $ python main.py book <token_id> --qty 100

    Place and cancel an order:
    $ python main.py buy <token_id> 0.54 100
    $ python main.py cancel <order_id>

    Environment variables:
    - PRIVATE_KEY: Signing key (trading commands only)
    - CLOB_HOST: Exchange REST host
    - LOG_LEVEL: Logging verbosity
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import orjson
import uvloop

from book_client import BookClient, BookResult, BookUnavailable
from config import config
from order_book import Side
from order_gateway import OrderGateway
from price_estimator import best_bid_ask, estimate_fill, mid_price, spread
from session_manager import SessionError, SessionManager

logger = logging.getLogger(__name__)


class TradeGateway:
    """Trade gateway orchestrator.

    Wires the read path (BookClient + price functions) and the write path
    (SessionManager + OrderGateway) behind one object. The trading session
    is not created here; it is established by the first order operation.

    Attributes:
        book_client (BookClient): Order book fetcher.
        session_manager (SessionManager): Owner of the trading session.
        order_gateway (OrderGateway): Order operations.
    """

    def __init__(self, book_client: BookClient = None, session_manager: SessionManager = None):
        self.book_client = book_client or BookClient()
        self.session_manager = session_manager or SessionManager()
        self.order_gateway = OrderGateway(self.session_manager)

    async def get_order_book(self, token_id: str, timeout: Optional[float] = None,
                             cancel: Optional[asyncio.Event] = None) -> BookResult:
        return await self.book_client.fetch_book(token_id, timeout=timeout, cancel=cancel)

    async def quote(self, token_id: str, quantity: Optional[float] = None,
                    timeout: Optional[float] = None):
        """Fetch a book and summarize its executable prices.

        Args:
            token_id: Token to quote.
            quantity: When given, also estimate buy and sell fills of this size.
            timeout: Request timeout override in seconds.

        Returns:
            dict: best_bid, best_ask, mid, spread, depth and, with a
                quantity, 'buy' / 'sell' fill estimates.
            BookUnavailable: If the book could not be fetched.
        """
        book = await self.get_order_book(token_id, timeout=timeout)
        if isinstance(book, BookUnavailable):
            return book

        best_bid, best_ask = best_bid_ask(book)
        summary = {
            'token_id': token_id,
            'best_bid': best_bid,
            'best_ask': best_ask,
            'mid': mid_price(book),
            'spread': spread(book),
            'depth': book.depth(),
        }
        if quantity is not None and quantity > 0:
            summary['quantity'] = quantity
            summary['buy'] = estimate_fill(book, Side.BUY, quantity)
            summary['sell'] = estimate_fill(book, Side.SELL, quantity)
        return summary

    async def place_order(self, token_id: str, price: float, size: float, side,
                          neg_risk: bool = False):
        return await self.order_gateway.place_order(token_id, price, size, side, neg_risk=neg_risk)

    async def cancel_order(self, order_id: str):
        return await self.order_gateway.cancel_order(order_id)

    async def cancel_all_orders(self):
        return await self.order_gateway.cancel_all_orders()

    async def list_open_orders(self, market: Optional[str] = None, asset_id: Optional[str] = None):
        return await self.order_gateway.list_open_orders(market=market, asset_id=asset_id)

    def get_stats(self):
        return {
            'book_client': self.book_client.get_stats(),
            'session': self.session_manager.get_stats(),
            'orders': self.order_gateway.get_stats(),
        }

    async def start(self):
        """Open the HTTP session and log what the gateway is configured for.

        The trading session is not established here; the first order
        operation does that.
        """
        await self.book_client.connect()
        logger.info("[Gateway] Book host: %s", self.book_client.host)
        logger.info(
            "[Gateway] Trading %s",
            "enabled" if self.session_manager.has_credentials else "disabled (PRIVATE_KEY not set)"
        )

    async def stop(self):
        """Release the HTTP session and log final statistics."""
        logger.info("[Gateway] Shutting down: %s", self.get_stats())
        await self.book_client.close()


def configure_logging(level: str = None):
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format=config.LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    # Suppress noisy third-party loggers
    for name in ('aiohttp', 'urllib3', 'httpx'):
        logging.getLogger(name).setLevel(logging.WARNING)


def positive_float(value: str) -> float:
    number = float(value)
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='trade-gateway', description=__doc__.splitlines()[0])
    parser.add_argument('--timeout', type=float, default=None, help='book request timeout (s)')
    commands = parser.add_subparsers(dest='command', required=True)

    book = commands.add_parser('book', help='quote a token from its order book')
    book.add_argument('token_id')
    book.add_argument('--qty', type=positive_float, default=None,
                      help='estimate fills of this size')

    for side in ('buy', 'sell'):
        order = commands.add_parser(side, help=f'place a {side} limit order')
        order.add_argument('token_id')
        order.add_argument('price', type=float)
        order.add_argument('size', type=float)
        order.add_argument('--neg-risk', action='store_true')

    cancel = commands.add_parser('cancel', help='cancel an order')
    cancel.add_argument('order_id')

    commands.add_parser('cancel-all', help='cancel every open order')

    orders = commands.add_parser('orders', help='list open orders')
    orders.add_argument('--market', default=None)
    orders.add_argument('--asset-id', default=None)

    return parser


async def execute(gateway: TradeGateway, args: argparse.Namespace):
    """Run one parsed command against the gateway and return its result."""
    if args.command == 'book':
        return await gateway.quote(args.token_id, quantity=args.qty, timeout=args.timeout)
    if args.command in ('buy', 'sell'):
        return await gateway.place_order(
            args.token_id, args.price, args.size, args.command, neg_risk=args.neg_risk
        )
    if args.command == 'cancel':
        return await gateway.cancel_order(args.order_id)
    if args.command == 'cancel-all':
        return await gateway.cancel_all_orders()
    if args.command == 'orders':
        return await gateway.list_open_orders(market=args.market, asset_id=args.asset_id)
    raise ValueError(f"Unknown command: {args.command}")


async def main(argv=None) -> int:
    """Parse arguments, run the command, print the result as JSON.

    Returns:
        int: Process exit status. 1 when a trade command could not obtain a
            trading session or the book was unavailable.
    """
    args = build_parser().parse_args(argv)
    gateway = TradeGateway()

    try:
        await gateway.start()
        result = await execute(gateway, args)
    except SessionError as e:
        print(f"[Gateway] {e}", file=sys.stderr)
        return 1
    finally:
        await gateway.stop()

    print(orjson.dumps(result, option=orjson.OPT_INDENT_2, default=str).decode())
    return 1 if isinstance(result, BookUnavailable) else 0


def run():
    configure_logging()
    try:
        sys.exit(uvloop.run(main()))
    except KeyboardInterrupt:
        print("\n[Gateway] Interrupted by user")
        sys.exit(130)


if __name__ == '__main__':
    run()
