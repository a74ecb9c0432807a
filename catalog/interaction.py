import asyncio
import os
from typing import Callable, List, Optional, Sequence

from .logger import get_logger
from .models import MenuItem
from .query import FilterState, QueryEngine, derive_categories

logger = get_logger(__name__)

SEARCH_DEBOUNCE_MS = int(os.getenv("SEARCH_DEBOUNCE_MS", "500"))


class SearchDebouncer:
    """
    Trailing-edge debounce for search input.

    Every push() restarts the quiet period; only the last value pushed is
    committed, once `delay` seconds pass without further input.
    """

    def __init__(self, on_commit: Callable[[str], None], delay: float = SEARCH_DEBOUNCE_MS / 1000):
        self.delay = delay
        self.on_commit = on_commit
        self._timer: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def push(self, text: str) -> None:
        """Must be called from a running event loop."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._timer_task(text))

    async def _timer_task(self, text: str) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        self._timer = None
        try:
            self.on_commit(text)
        except Exception as e:
            logger.error("Search commit failed for %r: %s", text, e, exc_info=True)

    async def flush(self) -> None:
        """Wait for the pending commit, if any, to fire."""
        timer = self._timer
        if timer is not None:
            await asyncio.gather(timer, return_exceptions=True)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None


class InteractionCoordinator:
    """
    Holds the filter state for one menu surface and re-runs the query when it
    changes: search text through the debouncer, category toggles immediately.
    """

    def __init__(
        self,
        engine: QueryEngine,
        on_results: Callable[[List[MenuItem]], None],
        delay: float = SEARCH_DEBOUNCE_MS / 1000,
        state: Optional[FilterState] = None,
    ):
        self.engine = engine
        self.on_results = on_results
        self.state = state or FilterState()
        self.debouncer = SearchDebouncer(self._commit_term, delay=delay)
        self._categories: List[str] = []
        self._closed = False

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    def set_snapshot(self, items: Sequence[MenuItem]) -> List[str]:
        """Recompute the category list for a new dataset."""
        self._categories = derive_categories(items)
        logger.debug("Category list for snapshot: %s", self._categories)
        return self.categories

    def on_text_changed(self, text: str) -> None:
        if self._closed:
            return
        self.debouncer.push(text)

    def toggle_category(self, category: str) -> List[MenuItem]:
        active = self.state.toggle(category)
        logger.debug("Category %r %s", category, "selected" if active else "cleared")
        return self.refresh()

    def refresh(self) -> List[MenuItem]:
        results = self.engine.filter_state(self.state)
        if not self._closed:
            self.on_results(results)
        return results

    def _commit_term(self, text: str) -> None:
        if self._closed:
            return
        logger.debug("Committed search term %r", text)
        self.state.term = text
        self.refresh()

    def close(self) -> None:
        """Drop any pending search commit; no results are delivered afterwards."""
        self._closed = True
        self.debouncer.cancel()
