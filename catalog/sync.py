import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .errors import LoadError
from .logger import get_logger
from .models import MenuItem
from .storage import MenuStore, now_utc_iso

logger = get_logger(__name__)

MenuLoader = Callable[[], List[MenuItem]]


class SyncState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"
    READY = "ready"


@dataclass
class SyncResult:
    state: SyncState
    items: List[MenuItem] = field(default_factory=list)
    fetched: bool = False
    error: Optional[LoadError] = None
    synced_at: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


class SyncController:
    """
    Fetch-once policy: the remote menu is loaded only when the local store
    is empty at startup. A populated store is authoritative from then on.
    """

    def __init__(self, store: MenuStore, loader: MenuLoader):
        self.store = store
        self.loader = loader
        self._state = SyncState.UNINITIALIZED
        self._lock = threading.Lock()

    @property
    def state(self) -> SyncState:
        return self._state

    def _compare_and_set(self, expected: SyncState, new: SyncState) -> bool:
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
        logger.info("Sync state %s -> %s", expected.value, new.value)
        return True

    def run(self) -> SyncResult:
        """
        Ensure the schema, read the store and seed it from the loader if empty.
        StorageError propagates; loader failures are returned on the result.
        """
        if self._state is SyncState.READY:
            return self._result(self.store.read_all())

        self.store.ensure_schema()
        items = self.store.read_all()

        if items:
            # Existing data wins; never re-fetch a populated store.
            self._compare_and_set(SyncState.UNINITIALIZED, SyncState.READY)
            logger.info("Menu store holds %d items; skipping remote fetch.", len(items))
            return self._result(items)

        if not self._compare_and_set(SyncState.UNINITIALIZED, SyncState.SEEDED):
            logger.info("Seeding already in progress or done (state=%s).", self._state.value)
            return self._result(items)

        try:
            loaded = self.loader()
        except LoadError as e:
            logger.error("Seeding menu store failed: %s", e)
            # Store is still empty, so the next run retries from scratch.
            self._compare_and_set(SyncState.SEEDED, SyncState.UNINITIALIZED)
            return SyncResult(
                state=self._state, items=[], fetched=True, error=e, synced_at=now_utc_iso()
            )
        except Exception:
            self._compare_and_set(SyncState.SEEDED, SyncState.UNINITIALIZED)
            raise

        try:
            self.store.upsert_many(loaded)
        except Exception:
            self._compare_and_set(SyncState.SEEDED, SyncState.UNINITIALIZED)
            raise

        if not loaded:
            logger.warning("Remote menu was empty; store stays empty until the next start.")

        self._compare_and_set(SyncState.SEEDED, SyncState.READY)
        return self._result(self.store.read_all(), fetched=True)

    def _result(self, items: List[MenuItem], fetched: bool = False) -> SyncResult:
        return SyncResult(
            state=self._state, items=items, fetched=fetched, synced_at=now_utc_iso()
        )
