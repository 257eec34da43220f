# =============================================================================
# app/services/thread_cache.py
# =============================================================================
"""
Pull request URL -> Slack thread mapping.

The in-memory map is authoritative for the life of the process. When a
durable store is configured it is consulted on a memory miss and written
through after an in-memory insert. Locks are held only around the map,
never around store or network I/O.

Store calls run synchronously on the event loop, so the store must be a
local, fast database (SQLite file or a nearby Postgres).
"""
import threading
from typing import Dict, Optional
from app.core.exceptions import StoreError
from app.services.thread_store import ThreadStore
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

class ThreadCache:

    def __init__(self, store: Optional[ThreadStore] = None):
        self.store = store
        self._threads: Dict[str, str] = {}
        self._lock = threading.Lock()

    def lookup(self, url: str) -> Optional[str]:
        """Thread ts for a pull request, or None. Store failures read as None."""
        with self._lock:
            ts = self._threads.get(url)
        if ts is not None or self.store is None:
            return ts

        try:
            ts = self.store.get_thread_ts(url)
        except StoreError as e:
            logger.error(f"Error attempting to retrieve possible timestamp from DB: {str(e)}")
            return None

        if ts is None:
            return None

        with self._lock:
            # Keep whichever mapping reached memory first
            return self._threads.setdefault(url, ts)

    def record_if_absent(self, url: str, ts: str) -> bool:
        """Remember `ts` as the thread of `url` unless one is already known"""
        with self._lock:
            if url in self._threads:
                return False
            self._threads[url] = ts

        if self.store is not None:
            try:
                if not self.store.insert_if_absent(url, ts):
                    logger.warning(f"Durable store already held a thread for {url}; memory keeps {ts}")
            except StoreError as e:
                logger.error(f"Error attempting to add a new timestamp to the DB: {str(e)}")

        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._threads)

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._threads
