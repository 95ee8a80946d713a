from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests

from txfeed.adapters.chain.rate_limiter import SimpleRateLimiter, backoff_sleep
from txfeed.config import settings
from txfeed.core.errors import DataSourceError
from txfeed.core.logger import get_logger
from txfeed.ports.price_port import PricePort

logger = get_logger(__name__)


class PriceAdapter(PricePort):
    """
    Batch price lookup against the wallet backend
    (POST {base}/wallets/get-tokens-price/ -> {"prices": {...}}).
    Failures are logged and reported as None, never raised.
    """

    def __init__(
        self,
        base_url: str = settings.PRICE_API_URL,
        requests_per_sec: float = settings.PRICE_REQUESTS_PER_SEC,
        timeout_sec: int = settings.PRICE_TIMEOUT_SEC,
        max_retries: int = settings.PRICE_MAX_RETRIES,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_sec
        self._max_retries = max_retries
        self._rl = SimpleRateLimiter(requests_per_sec)
        self._session = session or requests.Session()

    def _call(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        last_err: Optional[Exception] = None
        url = f"{self._base_url}/{path.lstrip('/')}"
        for attempt in range(self._max_retries):
            try:
                self._rl.wait()
                resp = self._session.post(url, json=payload, timeout=self._timeout)
                resp.raise_for_status()
                data = resp.json()
                if not isinstance(data, dict):
                    raise DataSourceError(f"Invalid price response: {data}")
                return data
            except (requests.RequestException, ValueError, DataSourceError) as e:
                last_err = e
                if attempt + 1 < self._max_retries:
                    backoff_sleep(attempt)
        raise DataSourceError(f"Price API failed after retries: {last_err}")

    @staticmethod
    def _dec(val: Any) -> Optional[Decimal]:
        if val is None:
            return None
        try:
            return Decimal(str(val))
        except (InvalidOperation, ValueError):
            return None

    def get_token_prices(
        self,
        asset_ids: List[str],
        currency: str = settings.PRICE_CURRENCY,
    ) -> Optional[Dict[str, Decimal]]:
        if not asset_ids:
            return {}
        try:
            data = self._call("wallets/get-tokens-price/", {"tokens": list(asset_ids), "currency": currency})
        except DataSourceError as exc:
            logger.warning("price_lookup_failed", assets=list(asset_ids), error=str(exc))
            return None

        raw = data.get("prices")
        if not isinstance(raw, dict):
            logger.warning("price_lookup_failed", assets=list(asset_ids), error="missing prices")
            return None

        out: Dict[str, Decimal] = {}
        for key, val in raw.items():
            price = self._dec(val)
            if price is not None:
                out[str(key)] = price
        return out
