from __future__ import annotations

import asyncio
from typing import List, Optional

from txfeed.config import settings
from txfeed.core.errors import DataSourceError, FetchError
from txfeed.core.logger import get_logger
from txfeed.core.models import FormattedEvent, HistoryPage
from txfeed.ports.chain_data_port import ChainDataPort
from txfeed.services.classifier import format_transactions

logger = get_logger(__name__)


class HistoryService:
    """
    Loads one page of wallet history and turns it into events.

    - Signatures come newest first from the node; detail fetches for a page
      run concurrently and are joined in signature order.
    - Transactions the node no longer returns are dropped.
    - Any data-source failure surfaces as FetchError; nothing is partially applied.
    """

    def __init__(
        self,
        chain: ChainDataPort,
        page_size: int = settings.HISTORY_PAGE_SIZE,
        latest_page_size: int = settings.HISTORY_LATEST_PAGE_SIZE,
    ) -> None:
        self.chain = chain
        self.page_size = page_size
        self.latest_page_size = latest_page_size

    async def fetch_page(
        self,
        address: str,
        before: Optional[str] = None,
        latest_only: bool = False,
    ) -> HistoryPage:
        limit = self.latest_page_size if latest_only else self.page_size
        try:
            sigs = await self.chain.get_signatures_for_address(address, limit=limit, before=before)
            if not sigs:
                return HistoryPage(events=[], last_signature=None, signature_count=0)

            txs = await self._gather_transactions([s.signature for s in sigs])
        except DataSourceError as exc:
            logger.warning(
                "history_fetch_failed",
                wallet_id=address,
                before=before,
                error=f"{exc.__class__.__name__}: {exc}",
            )
            raise FetchError(f"Failed to fetch transactions for {address}: {exc}") from exc

        events = format_transactions(address, txs)
        missing = sum(1 for t in txs if t is None)
        logger.info(
            "history_page_fetched",
            wallet_id=address,
            before=before,
            signatures=len(sigs),
            missing=missing,
            events=len(events),
        )
        return HistoryPage(
            events=events,
            last_signature=sigs[-1].signature,
            signature_count=len(sigs),
        )

    async def _gather_transactions(self, signatures: List[str]) -> list:
        tasks = [asyncio.ensure_future(self.chain.get_parsed_transaction(s)) for s in signatures]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            # one failure fails the page; don't leave siblings retrying
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def fetch_transactions(
        self, address: str, before: Optional[str] = None
    ) -> List[FormattedEvent]:
        page = await self.fetch_page(address, before=before)
        return page.events

    async def fetch_latest(self, address: str) -> Optional[FormattedEvent]:
        page = await self.fetch_page(address, latest_only=True)
        return page.events[0] if page.events else None
