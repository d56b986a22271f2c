"""
Shared fakes for the trade gateway tests
========================================

FakeSession / FakeResponse stand in for aiohttp.ClientSession on the read
path. FakeExchange builds FakeClobClient instances in place of the real
exchange client and records every call made against it.
"""

import asyncio
import itertools
import time

import orjson
import pytest
from py_clob_client.clob_types import ApiCreds

# Well-formed secp256k1 key used only in tests
TEST_PRIVATE_KEY = '0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318'


class FakeResponse:
    def __init__(self, status=200, payload=None, body=None, delay=0.0):
        self.status = status
        self.body = body if body is not None else orjson.dumps(payload if payload is not None else {})
        self.delay = delay

    async def __aenter__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def read(self):
        return self.body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.closed = False
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({'url': url, 'params': params, 'timeout': timeout})
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


class FakeExchange:
    """Records what the gateway asks of the exchange."""

    def __init__(self, derive_delay=0.05, fail_derivations=0):
        self.derive_delay = derive_delay
        self.fail_derivations = fail_derivations
        self.derive_calls = 0
        self.clients = []
        self.orders = []
        self.cancelled = []
        self.open_orders = []
        self.reject = None
        self._ids = itertools.count(1)

    def factory(self, host, chain_id=None, key=None, creds=None, signature_type=None, funder=None):
        client = FakeClobClient(self, host, chain_id=chain_id, key=key, creds=creds)
        self.clients.append(client)
        return client


class FakeClobClient:
    def __init__(self, exchange, host, chain_id=None, key=None, creds=None):
        self.exchange = exchange
        self.host = host
        self.chain_id = chain_id
        self.key = key
        self.creds = creds

    def create_or_derive_api_creds(self):
        self.exchange.derive_calls += 1
        time.sleep(self.exchange.derive_delay)
        if self.exchange.fail_derivations > 0:
            self.exchange.fail_derivations -= 1
            raise ConnectionError("auth endpoint unreachable")
        return ApiCreds(api_key='api-key', api_secret='api-secret', api_passphrase='api-pass')

    def create_and_post_order(self, order_args, options=None):
        if self.exchange.reject is not None:
            raise self.exchange.reject
        self.exchange.orders.append((order_args, options))
        return {'success': True, 'orderID': f"0x{next(self.exchange._ids):04x}", 'status': 'live'}

    def cancel(self, order_id):
        self.exchange.cancelled.append(order_id)
        return {'canceled': [order_id], 'not_canceled': {}}

    def cancel_all(self):
        ids = [order['id'] for order in self.exchange.open_orders]
        self.exchange.cancelled.extend(ids)
        return {'canceled': ids, 'not_canceled': {}}

    def get_orders(self, params=None):
        self.exchange.last_params = params
        return list(self.exchange.open_orders)


@pytest.fixture
def exchange():
    return FakeExchange()


@pytest.fixture
def book_payload():
    return {
        'market': '0xcondition',
        'asset_id': 'token-yes',
        'bids': [['0.50', '200'], ['0.52', '100'], ['0.51', '50']],
        'asks': [['0.55', '300'], ['0.54', '150']],
    }
