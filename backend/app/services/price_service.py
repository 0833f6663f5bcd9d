"""Token price lookups against CoinGecko."""

import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.core.redis_client import cache_get, cache_set

logger = logging.getLogger(__name__)


class PriceService:
    """Service for fetching and caching token prices in USD."""

    # Symbol (lower-case) -> CoinGecko ID
    SYMBOL_MAP = {
        "btc": "bitcoin",
        "eth": "ethereum",
        "weth": "weth",
        "usdt": "tether",
        "usdc": "usd-coin",
        "dai": "dai",
        "bnb": "binancecoin",
        "xrp": "ripple",
        "ada": "cardano",
        "sol": "solana",
        "doge": "dogecoin",
        "dot": "polkadot",
        "avax": "avalanche-2",
        "shib": "shiba-inu",
        "matic": "matic-network",
        "pol": "polygon-ecosystem-token",
        "link": "chainlink",
        "uni": "uniswap",
        "atom": "cosmos",
        "ltc": "litecoin",
        "etc": "ethereum-classic",
        "near": "near",
        "algo": "algorand",
        "vet": "vechain",
        "fil": "filecoin",
        "icp": "internet-computer",
        "xtz": "tezos",
        "axs": "axie-infinity",
        "aave": "aave",
        "crv": "curve-dao-token",
        "mkr": "maker",
        "snx": "synthetix-network-token",
        "comp": "compound-governance-token",
        "ldo": "lido-dao",
        "steth": "staked-ether",
        "reth": "rocket-pool-eth",
        "rpl": "rocket-pool",
        "arb": "arbitrum",
        "op": "optimism",
        "grt": "the-graph",
        "ens": "ethereum-name-service",
        "pepe": "pepe",
    }

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        redis=None,
        use_cache: bool = True,
    ):
        self.base_url = settings.COINGECKO_BASE_URL.rstrip("/")
        self.api_key = settings.COINGECKO_API_KEY
        self.cache_ttl = settings.PRICE_CACHE_TTL
        self._client = client
        self._redis = redis
        self.use_cache = use_cache

    def _map_symbol_to_id(self, symbol: str) -> str:
        """Unknown symbols are passed through as their own CoinGecko ID."""
        return self.SYMBOL_MAP.get(symbol, symbol)

    async def get_token_price(self, symbol: str) -> Optional[float]:
        """Current USD price of a token, or None when it cannot be resolved."""
        symbol = (symbol or "").strip().lower()
        if not symbol:
            return None

        token_id = self._map_symbol_to_id(symbol)
        cache_key = f"price:usd:{token_id}"

        if self.use_cache:
            cached = await cache_get(cache_key, redis=self._redis)
            if cached is not None:
                return float(cached)

        price = await self._fetch_price(token_id)

        if price is not None and self.use_cache:
            await cache_set(cache_key, price, self.cache_ttl, redis=self._redis)

        return price

    async def _fetch_price(self, token_id: str) -> Optional[float]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-pro-api-key"] = self.api_key

        url = f"{self.base_url}/simple/price"
        params = {"ids": token_id, "vs_currencies": "usd"}

        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
                    response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching price for {token_id}: {e}")
            return None

        usd = (data.get(token_id) or {}).get("usd") if isinstance(data, dict) else None
        if usd is None:
            logger.warning(f"No CoinGecko price for {token_id}")
            return None

        try:
            return float(usd)
        except (TypeError, ValueError):
            logger.warning(f"Malformed CoinGecko price for {token_id}: {usd!r}")
            return None


# Singleton instance
price_service = PriceService()
