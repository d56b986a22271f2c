"""HTTP client for the exchange's public order book endpoint.

This module fetches order books over HTTP with aiohttp and hands the
decoded body to the normalizer. It is the read path of the gateway: no
trading session or secret is needed, and failures never raise. A failed
fetch is reported once, as a warning, and returned to the caller as a
BookUnavailable value that is distinct from a successfully fetched book
that happens to be empty.

Bodies are decoded with orjson, which is noticeably faster than the
standard library json module on large books.

Classes:
    BookUnavailable: Outcome of a fetch that produced no book.
    BookClient: Async book fetcher with per-call timeout and cancellation.

Examples:
    >>> async with BookClient('https://clob.polymarket.com') as client:
    ...     result = await client.fetch_book(token_id)
    ...     if isinstance(result, BookUnavailable):
    ...         print(f"No book: {result.reason}")

Notes:
    - Each call re-fetches from the exchange; snapshots are never cached
    - No retries: a failed fetch is reported to its caller exactly once
    - Task cancellation (asyncio.CancelledError) is propagated, only the
      explicit cancel token is turned into BookUnavailable
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

import aiohttp
import orjson

from config import config
from order_book import OrderBookSnapshot, normalize_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookUnavailable:
    """No book could be obtained for ``token_id``.

    Attributes:
        token_id (str): Token whose book was requested.
        reason (str): Short description, e.g. 'HTTP 404', 'timeout',
            'cancelled'.
    """

    token_id: str
    reason: str


BookResult = Union[OrderBookSnapshot, BookUnavailable]


class BookClient:
    """Async fetcher for ``GET {host}/book?token_id=...``.

    Attributes:
        host (str): Exchange REST host without trailing slash.
        timeout_s (float): Default total timeout per request in seconds.
        fetch_count (int): Book requests issued since creation.
        failure_count (int): Requests that ended as BookUnavailable.
    """

    def __init__(self, host: str = None, timeout_s: float = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """Initialize the client.

        Args:
            host: Exchange REST host. Defaults to config.CLOB_HOST.
            timeout_s: Default request timeout. Defaults to config.HTTP_TIMEOUT_S.
            session: Existing aiohttp session to reuse. When omitted, the
                client opens its own session on first use and closes it in
                close().
        """
        self.host = (host or config.CLOB_HOST).rstrip('/')
        self.timeout_s = timeout_s if timeout_s is not None else config.HTTP_TIMEOUT_S
        self._session = session
        self._owns_session = session is None
        self.fetch_count = 0
        self.failure_count = 0

    @property
    def book_url(self) -> str:
        return f"{self.host}/book"

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def connect(self):
        """Open the HTTP session ahead of the first fetch."""
        self._ensure_session()

    def _unavailable(self, token_id: str, reason: str) -> BookUnavailable:
        self.failure_count += 1
        logger.warning("[Book] Order book for %s unavailable: %s", token_id, reason)
        return BookUnavailable(token_id=token_id, reason=reason)

    async def _get_book(self, token_id: str, timeout: Optional[float]) -> BookResult:
        session = self._ensure_session()
        client_timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else self.timeout_s
        )

        try:
            async with session.get(self.book_url, params={'token_id': token_id},
                                   timeout=client_timeout) as resp:
                if not 200 <= resp.status < 300:
                    return self._unavailable(token_id, f"HTTP {resp.status}")
                body = await resp.read()
            payload = orjson.loads(body)
        except asyncio.TimeoutError:
            return self._unavailable(token_id, 'timeout')
        except aiohttp.ClientError as e:
            return self._unavailable(token_id, f"{type(e).__name__}: {e}")
        except orjson.JSONDecodeError as e:
            return self._unavailable(token_id, f"invalid JSON body: {e}")

        book = normalize_payload(payload, token_id=token_id)
        logger.debug("[Book] %s: %d bids / %d asks", token_id, len(book.bids), len(book.asks))
        return book

    async def fetch_book(self, token_id: str, timeout: Optional[float] = None,
                         cancel: Optional[asyncio.Event] = None) -> BookResult:
        """Fetch and normalize the current book for one token.

        Args:
            token_id: Exchange token id (one outcome of a market).
            timeout: Total timeout for this call in seconds. Overrides the
                client default.
            cancel: Optional cancellation token. If the event is set before
                the response has been read, the request is abandoned and
                BookUnavailable(reason='cancelled') is returned.

        Returns:
            OrderBookSnapshot: On a 2xx response, possibly with empty sides.
            BookUnavailable: On non-2xx status, network error, timeout,
                undecodable body, or cancellation.
        """
        self.fetch_count += 1

        if cancel is None:
            return await self._get_book(token_id, timeout)

        if cancel.is_set():
            return self._unavailable(token_id, 'cancelled')

        fetch = asyncio.ensure_future(self._get_book(token_id, timeout))
        cancelled = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({fetch, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not fetch.done():
                fetch.cancel()

        if fetch in done:
            return fetch.result()
        return self._unavailable(token_id, 'cancelled')

    async def fetch_books(self, token_ids: Iterable[str], timeout: Optional[float] = None,
                          cancel: Optional[asyncio.Event] = None) -> Dict[str, BookResult]:
        """Fetch several books concurrently, keyed by token id."""
        token_ids = list(dict.fromkeys(token_ids))
        results = await asyncio.gather(
            *(self.fetch_book(token_id, timeout=timeout, cancel=cancel) for token_id in token_ids)
        )
        return dict(zip(token_ids, results))

    def get_stats(self):
        """Get client statistics.

        Returns:
            dict: Statistics containing:
                - fetches (int): Book requests issued
                - failures (int): Requests that returned BookUnavailable
                - host (str): Exchange host
        """
        return {
            'fetches': self.fetch_count,
            'failures': self.failure_count,
            'host': self.host
        }

    async def close(self):
        """Close the HTTP session if this client opened it."""
        if not self._owns_session or self._session is None:
            return
        if not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
