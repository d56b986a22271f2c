"""Order book snapshots normalized from exchange payloads.

This module turns the raw bid/ask arrays returned by the exchange's book
endpoint into canonically ordered price levels. Every fetch builds a fresh
snapshot; nothing here is cached or shared between calls, so a snapshot is
always exactly what the exchange reported at fetch time.

The exchange transmits prices and sizes as decimal strings. Entries that
cannot be parsed are dropped rather than failing the whole book, because a
single malformed level should not make an otherwise usable market look
empty.

Classes:
    PriceLevel: Immutable (price, size) pair of resting liquidity.
    Side: Order side (BUY/SELL), also selecting which book side to walk.
    OrderBookSnapshot: Bids (best first, descending) and asks (best first,
        ascending) for one token.

Functions:
    parse_level: Parse one raw level into a PriceLevel, or None.
    normalize: Build an OrderBookSnapshot from raw bid/ask arrays.
    normalize_payload: Build an OrderBookSnapshot from a decoded book body.

Examples:
    >>> book = normalize([['0.52', '100'], ['0.53', '40']], [['0.55', '10']])
    >>> book.bids[0]
    PriceLevel(price=0.53, size=40.0)
    >>> book.asks[0].price
    0.55

Notes:
    - Levels of equal price are not merged; their input order is preserved
    - A missing side yields an empty tuple, never an error
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Tuple
import math


@dataclass(frozen=True)
class PriceLevel:
    """Resting liquidity at a single price.

    Lightweight immutable value using __slots__ so that large books do not
    pay for a per-instance __dict__.

    Attributes:
        price (float): Limit price of the level, in outcome-share units
            (0 to 1 for a binary market). Never negative.

        size (float): Number of shares resting at the price. Never negative.

    Examples:
        >>> level = PriceLevel(price=0.54, size=150.0)
        >>> level.price * level.size
        81.0
    """

    __slots__ = ('price', 'size')

    price: float
    size: float


class Side(str, Enum):
    """Order side. BUY takes liquidity from the asks, SELL from the bids."""

    BUY = 'BUY'
    SELL = 'SELL'

    @classmethod
    def parse(cls, value) -> 'Side':
        """Accept a Side or any casing of 'buy'/'sell'."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown order side: {value!r}") from None


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Point-in-time order book for one token.

    Attributes:
        bids (tuple[PriceLevel, ...]): Buy-side levels sorted by price,
            highest first. bids[0] is the best bid.

        asks (tuple[PriceLevel, ...]): Sell-side levels sorted by price,
            lowest first. asks[0] is the best ask.

        token_id (str): Token the book was fetched for. Empty when the
            snapshot was built directly from raw levels.

    Notes:
        - Consecutive bid prices are non-increasing, ask prices non-decreasing
        - The book is not checked for crossing (best bid >= best ask)
    """

    bids: Tuple[PriceLevel, ...] = ()
    asks: Tuple[PriceLevel, ...] = ()
    token_id: str = ''

    @property
    def is_empty(self) -> bool:
        return not self.bids and not self.asks

    def depth(self) -> dict:
        """Total size and level count per side."""
        return {
            'bid_levels': len(self.bids),
            'ask_levels': len(self.asks),
            'bid_size': sum(level.size for level in self.bids),
            'ask_size': sum(level.size for level in self.asks),
        }


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def parse_level(raw: Any) -> Optional[PriceLevel]:
    """Parse one raw level into a PriceLevel.

    Accepts both wire shapes seen from the exchange: a ``[price, size]``
    pair and a ``{"price": ..., "size": ...}`` object. Values may be strings
    or numbers.

    Args:
        raw: A single entry from a ``bids`` or ``asks`` array.

    Returns:
        Optional[PriceLevel]: The parsed level, or None when either field is
            missing, non-numeric, non-finite or negative.

    Examples:
        >>> parse_level(['0.54', '150'])
        PriceLevel(price=0.54, size=150.0)
        >>> parse_level({'price': '0.55', 'size': '300'})
        PriceLevel(price=0.55, size=300.0)
        >>> parse_level(['abc', '10']) is None
        True
    """
    if isinstance(raw, dict):
        price, size = raw.get('price'), raw.get('size')
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        price, size = raw[0], raw[1]
    else:
        return None

    price = _to_float(price)
    size = _to_float(size)
    if price is None or size is None:
        return None
    return PriceLevel(price=price, size=size)


def _parse_side(raw_levels: Optional[Iterable[Any]]) -> list:
    if not raw_levels or isinstance(raw_levels, (str, bytes, dict)):
        return []
    levels = []
    for raw in raw_levels:
        level = parse_level(raw)
        if level is not None:
            levels.append(level)
    return levels


def normalize(raw_bids: Optional[Sequence[Any]], raw_asks: Optional[Sequence[Any]],
              token_id: str = '') -> OrderBookSnapshot:
    """Build a canonically ordered snapshot from raw bid/ask arrays.

    Pure transform: parses every level, drops the unparsable ones, then
    sorts bids by descending price and asks by ascending price. Python's
    sort is stable (also with ``reverse=True``), so levels with equal price
    keep their input order.

    Args:
        raw_bids: Raw buy-side levels, or None when the side is missing.
        raw_asks: Raw sell-side levels, or None when the side is missing.
        token_id: Token the levels belong to, carried onto the snapshot.

    Returns:
        OrderBookSnapshot: Normalized book. Missing or entirely malformed
            sides come back as empty tuples.

    Examples:
        >>> book = normalize([['0.50', '10'], ['0.52', '5']], None)
        >>> [level.price for level in book.bids]
        [0.52, 0.5]
        >>> book.asks
        ()
    """
    bids = sorted(_parse_side(raw_bids), key=lambda level: level.price, reverse=True)
    asks = sorted(_parse_side(raw_asks), key=lambda level: level.price)
    return OrderBookSnapshot(bids=tuple(bids), asks=tuple(asks), token_id=token_id)


def normalize_payload(payload: Any, token_id: str = '') -> OrderBookSnapshot:
    """Build a snapshot from a decoded book response body.

    Some gateway deployments wrap the book in a top-level ``data`` object;
    both shapes are accepted. A body that is not an object yields an empty
    book.
    """
    if isinstance(payload, dict) and isinstance(payload.get('data'), dict):
        payload = payload['data']
    if not isinstance(payload, dict):
        return OrderBookSnapshot(token_id=token_id)
    return normalize(payload.get('bids'), payload.get('asks'), token_id=token_id)
