"""Configuration module for the Trade Gateway.

Settings for the trade gateway come from the process environment (and a
.env file, via python-dotenv) and are published as the `config` singleton.

Read-only market data (order books, price estimates) needs no secret at all.
The signing key is only consulted the first time a trade-intent operation
runs, so the gateway can be started for price monitoring without one.

Module Attributes:
    config (Config): Singleton configuration instance for application-wide use.

Environment Variables:
    PRIVATE_KEY: Signing key for the trading identity (default: empty)
    CLOB_HOST: Exchange REST host (default: https://clob.polymarket.com)
    CHAIN_ID: Chain the signing identity signs for (default: 137)
    SIGNATURE_TYPE: Optional wallet signature scheme, 0/1/2 (default: unset)
    FUNDER_ADDRESS: Optional proxy wallet holding the funds (default: unset)
    HTTP_TIMEOUT_S: Default timeout for book requests in seconds (default: 10)
    LOG_LEVEL: Logging verbosity level (default: info)

Examples:
    >>> from config import config
    >>> print(config.CLOB_HOST)
    https://clob.polymarket.com
    >>> print(config.CHAIN_ID)
    137

Notes:
    - All environment variables are loaded from .env file if present
    - Configuration is immutable after module import
    - The private key is never logged or included in stats output
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _optional_int(name: str):
    value = os.getenv(name, '').strip()
    return int(value) if value else None


class Config:
    """Application configuration class.

    Values are read once, when the class body executes, and are typed on
    the way in. Components take them as constructor defaults.

    Attributes:
        PRIVATE_KEY (str): Hex-encoded signing key used to build the trading
            identity and derive exchange API credentials. Empty means trading
            is unavailable; book reads still work.
            Default: ''

        CLOB_HOST (str): Base URL of the exchange REST API. Serves both the
            public order book endpoint and the authenticated trading endpoints.
            Default: 'https://clob.polymarket.com'

        CHAIN_ID (int): Chain id the order signatures are bound to.
            Default: 137 (Polygon mainnet)

        SIGNATURE_TYPE (int | None): Wallet signature scheme passed through to
            the exchange client (0 = EOA, 1 = email/magic proxy,
            2 = browser proxy). None lets the client pick its default.
            Default: None

        FUNDER_ADDRESS (str | None): Address of the proxy wallet that holds
            the funds when it differs from the signer.
            Default: None

        HTTP_TIMEOUT_S (float): Total timeout applied to each order book
            request unless the caller supplies its own.
            Default: 10.0

        LOG_LEVEL (str): Logging verbosity level. Valid values are 'debug',
            'info', 'warning', 'error'.
            Default: 'info'
    """

    # Trading identity
    PRIVATE_KEY = os.getenv('PRIVATE_KEY', '')
    SIGNATURE_TYPE = _optional_int('SIGNATURE_TYPE')
    FUNDER_ADDRESS = os.getenv('FUNDER_ADDRESS') or None

    # Network endpoints
    CLOB_HOST = os.getenv('CLOB_HOST', 'https://clob.polymarket.com').rstrip('/')
    CHAIN_ID = int(os.getenv('CHAIN_ID', '137'))
    HTTP_TIMEOUT_S = float(os.getenv('HTTP_TIMEOUT_S', '10'))

    # System settings
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'info')
    LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


# Singleton configuration instance
config = Config()
