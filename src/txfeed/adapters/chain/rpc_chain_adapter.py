from __future__ import annotations

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import httpx

from txfeed.config.settings import (
    SOLANA_COMMITMENT,
    SOLANA_MAX_CONCURRENCY,
    SOLANA_MAX_RETRIES,
    SOLANA_MAX_TX_VERSION,
    SOLANA_REQUESTS_PER_SEC,
    SOLANA_RPC_URL,
    SOLANA_TIMEOUT_SEC,
    TOKEN_PROGRAM_ID,
)

from txfeed.adapters.chain.parsed_tx import parse_signature_info, parse_token_account, parse_transaction
from txfeed.adapters.chain.rate_limiter import AsyncRateLimiter, async_backoff_sleep
from txfeed.core.dto import RawLedgerTransaction, SignatureInfo, TokenAccountBalance
from txfeed.core.errors import DataSourceError, RateLimitError
from txfeed.core.logger import get_logger
from txfeed.ports.chain_data_port import ChainDataPort

logger = get_logger(__name__)


class RpcChainAdapter(ChainDataPort):
    """JSON-RPC 2.0 client for a Solana node, jsonParsed encoding."""

    def __init__(
        self,
        rpc_url: str = SOLANA_RPC_URL,
        client: Optional[httpx.AsyncClient] = None,
        requests_per_sec: float = SOLANA_REQUESTS_PER_SEC,
        max_retries: int = SOLANA_MAX_RETRIES,
        max_concurrency: int = SOLANA_MAX_CONCURRENCY,
    ) -> None:
        self._rpc_url = rpc_url
        self._max_retries = max_retries
        self._commitment = SOLANA_COMMITMENT

        self._rl = AsyncRateLimiter(requests_per_sec)
        self._sem = asyncio.Semaphore(max_concurrency)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(SOLANA_TIMEOUT_SEC))
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "RpcChainAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---------- internal ----------

    async def _call(self, method: str, params: List[Any]) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        last_err: Optional[Exception] = None

        async with self._sem:
            for attempt in range(self._max_retries):
                try:
                    await self._rl.wait()
                    resp = await self._client.post(self._rpc_url, json=body)
                    if resp.status_code == 429:
                        last_err = RateLimitError(f"{method}: HTTP 429")
                        await async_backoff_sleep(attempt)
                        continue
                    resp.raise_for_status()
                    data = resp.json()
                except (httpx.HTTPError, ValueError) as e:
                    last_err = e
                    logger.warning(
                        "rpc_retry",
                        method=method,
                        attempt=attempt + 1,
                        max_retries=self._max_retries,
                        error=str(e),
                    )
                    await async_backoff_sleep(attempt)
                    continue

                if not isinstance(data, dict):
                    raise DataSourceError(f"Invalid RPC response for {method}: {data!r}")
                err = data.get("error")
                if err:
                    message = err.get("message", err) if isinstance(err, dict) else err
                    raise DataSourceError(f"Solana RPC error in {method}: {message}")
                return data.get("result")

        if isinstance(last_err, RateLimitError):
            raise last_err
        raise DataSourceError(f"Solana RPC {method} failed after retries: {last_err}")

    # ---------- port methods ----------

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int,
        before: Optional[str] = None,
    ) -> List[SignatureInfo]:
        opts: Dict[str, Any] = {"limit": int(limit), "commitment": self._commitment}
        if before is not None:
            opts["before"] = before

        result = await self._call("getSignaturesForAddress", [address, opts])
        rows = result if isinstance(result, list) else []

        out: List[SignatureInfo] = []
        for r in rows:
            info = parse_signature_info(r)
            if info is not None:
                out.append(info)
        return out

    async def get_parsed_transaction(self, signature: str) -> Optional[RawLedgerTransaction]:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self._commitment,
                    "maxSupportedTransactionVersion": SOLANA_MAX_TX_VERSION,
                },
            ],
        )
        if result is None:
            return None
        return parse_transaction(result, signature=signature)

    async def get_balance(self, address: str) -> int:
        result = await self._call("getBalance", [address, {"commitment": self._commitment}])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(f"Invalid balance result: {result}") from e

    async def get_token_balances_by_owner(self, address: str) -> List[TokenAccountBalance]:
        result = await self._call(
            "getTokenAccountsByOwner",
            [
                address,
                {"programId": TOKEN_PROGRAM_ID},
                {"encoding": "jsonParsed", "commitment": self._commitment},
            ],
        )
        rows = result.get("value") if isinstance(result, dict) else None

        out: List[TokenAccountBalance] = []
        for r in rows if isinstance(rows, list) else []:
            acct = parse_token_account(r)
            if acct is not None:
                out.append(acct)
        return out
