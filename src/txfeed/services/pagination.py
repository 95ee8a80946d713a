from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from txfeed.core.enums import FetchStatus
from txfeed.core.errors import FetchError
from txfeed.core.logger import get_logger
from txfeed.core.models import FormattedEvent, PaginationCursor, PaginationState
from txfeed.services.history_service import HistoryService

logger = get_logger(__name__)

ERROR_MESSAGE = "Error loading transactions"


class PaginationController:
    """
    Accumulates history pages for one wallet behind a `before` cursor.

    One controller is one pagination flow. `load_more` while a fetch is in
    flight, or after the last page, is a no-op. A `refresh` supersedes any
    in-flight page: results from an older generation, or arriving after
    `close()`, are discarded. Failures leave the cursor and the accumulated
    events as they were, so retrying is always safe.
    """

    def __init__(self, history: HistoryService, address: str) -> None:
        self.history = history
        self.address = address

        self._events: List[FormattedEvent] = []
        self._cursor = PaginationCursor()
        self._status = FetchStatus.IDLE
        self._error: Optional[str] = None
        self._loading = False
        self._loading_more = False
        self._generation = 0
        self._closed = False

    # ---------- state ----------

    @property
    def cursor(self) -> PaginationCursor:
        return self._cursor

    @property
    def events(self) -> List[FormattedEvent]:
        return list(self._events)

    @property
    def has_more(self) -> bool:
        return self._cursor.has_more

    @property
    def in_flight(self) -> bool:
        return self._loading or self._loading_more

    @property
    def state(self) -> PaginationState:
        return PaginationState(
            events=list(self._events),
            has_more=self._cursor.has_more,
            is_loading=self._loading,
            is_loading_more=self._loading_more,
            error=self._error,
            status=self._status,
        )

    def close(self) -> None:
        """Detach the consumer; anything still in flight is dropped on arrival."""
        self._closed = True

    # ---------- actions ----------

    async def refresh(self) -> List[FormattedEvent]:
        return await self.fetch_page(reset=True)

    async def load_more(self) -> List[FormattedEvent]:
        if self._loading_more or self._loading or not self._cursor.has_more:
            return self.events
        return await self.fetch_page(reset=False)

    async def fetch_page(self, reset: bool) -> List[FormattedEvent]:
        if self._closed:
            return self.events
        if not reset and (self.in_flight or not self._cursor.has_more):
            return self.events

        # flags are set before the first await, so a second caller sees them
        if reset:
            self._generation += 1
            self._loading = True
        else:
            self._loading_more = True
        generation = self._generation
        before = None if reset else self._cursor.last_signature
        previous_status = self._status if self._status is not FetchStatus.LOADING else FetchStatus.IDLE
        previous_error = self._error
        self._status = FetchStatus.LOADING
        self._error = None

        try:
            page = await self.history.fetch_page(self.address, before=before)
        except FetchError as exc:
            if self._is_current(generation):
                self._status = FetchStatus.ERROR
                self._error = ERROR_MESSAGE
                logger.warning(
                    "pagination_fetch_failed",
                    wallet_id=self.address,
                    reset=reset,
                    error=str(exc),
                )
            return self.events
        except BaseException:
            # cancelled or unexpected; the flow must not stay LOADING
            if self._is_current(generation):
                self._status = previous_status
                self._error = previous_error
            raise
        finally:
            if generation == self._generation:
                if reset:
                    self._loading = False
                else:
                    self._loading_more = False
            elif not reset:
                self._loading_more = False

        if not self._is_current(generation):
            logger.debug("pagination_stale_page_dropped", wallet_id=self.address, reset=reset)
            return self.events

        if reset:
            self._events = list(page.events)
            self._cursor = PaginationCursor()
        else:
            self._events.extend(page.events)

        if page.is_empty:
            self._cursor = replace(self._cursor, has_more=False)
        else:
            self._cursor = replace(self._cursor, last_signature=page.last_signature)

        self._status = FetchStatus.SUCCESS
        return self.events

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation
