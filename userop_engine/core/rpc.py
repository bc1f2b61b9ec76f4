# /userop_engine/core/rpc.py
# Cached AsyncWeb3 handles, one per endpoint URL.
import time
from typing import Callable, Dict
from urllib.parse import urlparse

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3

from userop_engine.core.cache import DualClockCache
from userop_engine.core.errors import ConfigurationError, RpcError
from userop_engine.core.logger import get_logger, record_active_connections

log = get_logger(__name__)


class ProviderCache:
    """Keeps endpoint handles alive for an hour, or two hours of idleness, whichever ends first."""
    def __init__(self, request_timeout: float = 10, clock: Callable[[], float] = time.monotonic):
        self.request_timeout = request_timeout
        self.provider_cache: DualClockCache[str, AsyncWeb3] = DualClockCache(3600, 7200, "provider", clock)

    def _connect(self, url: str) -> AsyncWeb3:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise RpcError(f"Invalid provider URL: {url!r}")
        return AsyncWeb3(AsyncHTTPProvider(
            url, request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.request_timeout)}
        ))

    async def get_provider(self, url: str) -> AsyncWeb3:
        provider = await self.provider_cache.get(url)
        if provider is not None:
            return provider

        provider = self._connect(url)
        await self.provider_cache.set(url, provider)
        log.info("PROVIDER_CONNECTED", host=urlparse(url).hostname)
        return provider


class ChainProviders:
    """Resolves the endpoint handle for each configured chain through a shared ProviderCache."""
    def __init__(self, urls: Dict[int, str], provider_cache: ProviderCache):
        self.urls = dict(urls)
        self.provider_cache = provider_cache

    async def get(self, chain_id: int) -> AsyncWeb3:
        url = self.urls.get(chain_id)
        if url is None:
            raise ConfigurationError(f"Chain ID {chain_id} not found in config")
        provider = await self.provider_cache.get_provider(url)
        record_active_connections(chain_id, 1)
        return provider
