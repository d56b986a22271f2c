"""Executable price estimation from order book depth.

This module derives trading metrics from a normalized OrderBookSnapshot:
top of book, mid price, spread, and the size-weighted average price a given
quantity would actually fill at when walking the book.

Strategy: BUY consumes asks from the lowest price up, SELL consumes bids
from the highest price down.

Example:
    >>> from order_book import normalize
    >>> book = normalize([['0.52', '100']], [['0.54', '150'], ['0.55', '300']])
    >>> mid_price(book)
    0.53
    >>> round(executable_average(book.asks, 450).price, 4)
    0.5467
    >>> executable_average(book.asks, 500)
    InsufficientLiquidity(requested=500, available=450.0)
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence, Union

from order_book import OrderBookSnapshot, PriceLevel, Side

# Leftover below this fraction of the requested quantity is float residue.
FILL_EPSILON = 1e-9


class BestBidAsk(NamedTuple):
    best_bid: Optional[PriceLevel]
    best_ask: Optional[PriceLevel]


@dataclass(frozen=True)
class Filled:
    """Quantity is fully fillable from the walked levels.

    Attributes:
        price (float): Size-weighted average execution price,
            total cost divided by the requested quantity.
        worst_price (float): Price of the last level consumed.
        levels_used (int): Number of levels that contributed size.
    """

    price: float
    worst_price: float
    levels_used: int


@dataclass(frozen=True)
class InsufficientLiquidity:
    """The walked levels cannot absorb the requested quantity.

    A partial-fill average is deliberately not reported here; ``available``
    is the total size the levels held, for diagnostics only.
    """

    requested: float
    available: float


FillEstimate = Union[Filled, InsufficientLiquidity]


def best_bid_ask(book: OrderBookSnapshot) -> BestBidAsk:
    """Return the first level of each side, or None for an empty side."""
    best_bid = book.bids[0] if book.bids else None
    best_ask = book.asks[0] if book.asks else None
    return BestBidAsk(best_bid, best_ask)


def mid_price(book: OrderBookSnapshot) -> Optional[float]:
    """Midpoint of best bid and best ask.

    Returns None unless both sides have at least one level. A crossed or
    locked book is not rejected; its literal arithmetic mid is returned.

    Example:
        >>> mid_price(normalize([['0.52', '1']], [['0.54', '1']]))
        0.53
    """
    best_bid, best_ask = best_bid_ask(book)
    if best_bid is None or best_ask is None:
        return None
    return (best_bid.price + best_ask.price) / 2


def spread(book: OrderBookSnapshot) -> Optional[float]:
    """Best ask minus best bid; negative for a crossed book, None if a side is empty."""
    best_bid, best_ask = best_bid_ask(book)
    if best_bid is None or best_ask is None:
        return None
    return best_ask.price - best_bid.price


def executable_average(levels: Sequence[PriceLevel], quantity: float) -> FillEstimate:
    """Walk book depth and compute the average price for ``quantity``.

    Levels are consumed in the order given, taking ``min(remaining, size)``
    at each level's price, until the quantity is exhausted or the levels run
    out. Pass ``book.asks`` to estimate a buy and ``book.bids`` to estimate a
    sell; both are already in price-priority order.

    Algorithm:
        1. remaining = quantity, cost = 0
        2. For each level: take = min(remaining, level.size);
           cost += take * level.price; remaining -= take
        3. Stop once remaining is exhausted
        4. Filled(cost / quantity) if exhausted, else InsufficientLiquidity

    Args:
        levels: Price levels in the order they would be consumed.
        quantity: Number of shares to fill. Must be positive.

    Returns:
        Filled: When every share can be filled; ``price`` is the
            size-weighted average, not the last level's price.
        InsufficientLiquidity: When the levels hold less than ``quantity``.

    Raises:
        ValueError: If quantity is not positive.

    Example:
        >>> asks = normalize(None, [['0.54', '150'], ['0.55', '300']]).asks
        >>> executable_average(asks, 100).price
        0.54
    """
    if not quantity > 0:
        raise ValueError(f"quantity must be positive, got {quantity!r}")

    remaining = quantity
    cost = 0.0
    levels_used = 0
    worst_price = None

    for level in levels:
        if remaining <= 0:
            break
        take = min(remaining, level.size)
        if take <= 0:
            continue
        cost += take * level.price
        remaining -= take
        levels_used += 1
        worst_price = level.price

    if remaining > FILL_EPSILON * quantity:
        return InsufficientLiquidity(
            requested=quantity,
            available=sum(level.size for level in levels),
        )

    return Filled(price=cost / quantity, worst_price=worst_price, levels_used=levels_used)


def estimate_fill(book: OrderBookSnapshot, side: Side, quantity: float) -> FillEstimate:
    """Estimate a market order: BUY walks the asks, SELL walks the bids."""
    side = Side.parse(side)
    levels = book.asks if side is Side.BUY else book.bids
    return executable_average(levels, quantity)
