"""Lazy, exactly-once trading session for the exchange.

Trading needs three things built from the configured signing key: a
signing identity, exchange-issued API credentials (one network round trip),
and an authenticated exchange client. This module builds them on the first
trade-intent call and shares the result with every later caller.

State machine:
    UNINITIALIZED --ensure_ready()--> INITIALIZING --ok--> READY
    INITIALIZING --derivation error--> UNINITIALIZED (a later call retries)
    INITIALIZING --missing/invalid key--> FAILED (permanent)

Concurrent callers that arrive while INITIALIZING join the same in-flight
asyncio.Task instead of starting their own. The exchange treats each
credential derivation as a separate request and rate-limits them, so the
derivation must happen exactly once per successful session.

Examples:
    >>> manager = SessionManager(private_key=config.PRIVATE_KEY)
    >>> session = await manager.ensure_ready()
    >>> session.signer.address
    '0x...'
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds

from config import config

logger = logging.getLogger(__name__)


class SessionError(RuntimeError):
    """Base class for failures to obtain a trading session."""


class MissingCredentialError(SessionError):
    """No usable signing key is configured. Not retried."""


class SessionInitError(SessionError):
    """Credential derivation or client construction failed. Retryable."""


def _consume_exception(task: asyncio.Task):
    # Mark the outcome retrieved even when every waiter was cancelled
    if not task.cancelled():
        task.exception()


class SessionState(Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZING = 'initializing'
    READY = 'ready'
    FAILED = 'failed'


@dataclass(frozen=True)
class TradingSession:
    """Authenticated trading identity.

    Attributes:
        signer (LocalAccount): Signing identity built from the private key.
        credentials (ApiCreds): Exchange-scoped API key, secret and passphrase.
        client (ClobClient): Exchange client authenticated with both.
    """

    signer: LocalAccount
    credentials: ApiCreds
    client: Any


class SessionManager:
    """Owns the single TradingSession of the process.

    Attributes:
        host (str): Exchange REST host.
        chain_id (int): Chain the signatures are bound to.
        init_attempts (int): Initialization sequences started so far.
    """

    def __init__(self, private_key: str = None, host: str = None, chain_id: int = None,
                 signature_type: Optional[int] = None, funder: Optional[str] = None,
                 client_factory: Callable[..., Any] = ClobClient):
        """Initialize the manager without touching the network.

        Args:
            private_key: Hex signing key. Defaults to config.PRIVATE_KEY.
            host: Exchange REST host. Defaults to config.CLOB_HOST.
            chain_id: Chain id. Defaults to config.CHAIN_ID.
            signature_type: Wallet signature scheme. Defaults to
                config.SIGNATURE_TYPE.
            funder: Proxy wallet address. Defaults to config.FUNDER_ADDRESS.
            client_factory: Callable building an exchange client; called as
                ``client_factory(host, chain_id=..., key=..., creds=...,
                signature_type=..., funder=...)``.
        """
        self._private_key = config.PRIVATE_KEY if private_key is None else private_key
        self.host = host or config.CLOB_HOST
        self.chain_id = chain_id if chain_id is not None else config.CHAIN_ID
        self.signature_type = signature_type if signature_type is not None else config.SIGNATURE_TYPE
        self.funder = funder if funder is not None else config.FUNDER_ADDRESS
        self._client_factory = client_factory

        self._state = SessionState.UNINITIALIZED
        self._session: Optional[TradingSession] = None
        self._pending: Optional[asyncio.Task] = None
        self._error: Optional[SessionError] = None
        self._lock = asyncio.Lock()
        self.init_attempts = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def has_credentials(self) -> bool:
        """Whether a signing key is configured. Does not validate it."""
        return bool(self._private_key)

    async def ensure_ready(self) -> TradingSession:
        """Return the trading session, initializing it on first use.

        Idempotent and safe to call from many coroutines at once: exactly
        one caller starts the initialization, all others await the same
        attempt. Once READY, returns without taking the lock.

        Returns:
            TradingSession: The shared session.

        Raises:
            MissingCredentialError: No valid signing key is configured.
                Every later call raises it again with the same message.
            SessionInitError: The credential derivation failed. Raised to
                every caller waiting on that attempt; the next call starts a
                fresh attempt.
        """
        if self._state is SessionState.READY:
            logger.debug("[Session] Ready (fast path)")
            return self._session

        async with self._lock:
            if self._state is SessionState.READY:
                return self._session
            if self._state is SessionState.FAILED:
                raise MissingCredentialError(str(self._error)) from None
            if self._state is SessionState.UNINITIALIZED:
                self._state = SessionState.INITIALIZING
                self.init_attempts += 1
                self._pending = asyncio.ensure_future(self._initialize())
                self._pending.add_done_callback(_consume_exception)
            pending = self._pending

        # shield: a cancelled waiter must not cancel the attempt others share
        return await asyncio.shield(pending)

    async def _initialize(self) -> TradingSession:
        logger.info("[Session] Initializing trading session (attempt %d)", self.init_attempts)
        try:
            session = await self._build_session()
        except MissingCredentialError as e:
            logger.error("[Session] %s", e)
            self._error = e
            self._state = SessionState.FAILED
            self._pending = None
            raise
        except Exception as e:
            logger.error("[Session] Initialization failed: %s", e)
            self._state = SessionState.UNINITIALIZED
            self._pending = None
            if isinstance(e, SessionInitError):
                raise
            raise SessionInitError(f"Trading session initialization failed: {e}") from e

        self._session = session
        self._state = SessionState.READY
        self._pending = None
        logger.info("[Session] Trading session ready for %s", session.signer.address)
        return session

    def _build_signer(self) -> LocalAccount:
        if not self._private_key:
            raise MissingCredentialError(
                "PRIVATE_KEY is not configured; trading operations are unavailable"
            )
        try:
            return Account.from_key(self._private_key)
        except (ValueError, TypeError) as e:
            raise MissingCredentialError(
                f"PRIVATE_KEY is not a valid signing key ({type(e).__name__})"
            ) from None

    def _make_client(self, creds: Optional[ApiCreds] = None):
        return self._client_factory(
            self.host,
            chain_id=self.chain_id,
            key=self._private_key,
            creds=creds,
            signature_type=self.signature_type,
            funder=self.funder,
        )

    async def _build_session(self) -> TradingSession:
        signer = self._build_signer()

        # Level-1 client: signs with the key only, used to obtain API creds
        base_client = self._make_client()
        logger.info("[Session] Deriving API credentials for %s", signer.address)
        creds = await asyncio.to_thread(base_client.create_or_derive_api_creds)
        if creds is None:
            raise SessionInitError("Exchange returned no API credentials")

        client = self._make_client(creds)
        return TradingSession(signer=signer, credentials=creds, client=client)

    def get_stats(self):
        """Get session statistics.

        Returns:
            dict: Statistics containing:
                - state (str): Current SessionState value
                - init_attempts (int): Initialization sequences started
                - address (str | None): Signer address once ready
        """
        return {
            'state': self._state.value,
            'init_attempts': self.init_attempts,
            'address': self._session.signer.address if self._session else None
        }
