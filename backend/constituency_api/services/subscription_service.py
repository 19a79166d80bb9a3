"""
Live query snapshots.

A subscription re-runs its query whenever the watched collection changes and
hands the fresh result list to a callback. Each one owns a daemon thread.
"""

import logging
import threading
from typing import Dict, Any, List, Callable, Optional

from pymongo.errors import PyMongoError

from ..database.mongo_service import MongoService, get_mongo_service, SortSpec
from ..errors import DatabaseUnavailableError

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[Dict[str, Any]]], None]


class Subscription:

    def __init__(self, mongo: MongoService, collection_name: str, filters: Optional[Dict[str, Any]],
                 callback: SnapshotCallback, sort: Optional[SortSpec] = None, limit: int = 0,
                 on_error: Optional[Callable[[Exception], None]] = None):
        self.mongo = mongo
        self.collection_name = collection_name
        self.filters = filters
        self.callback = callback
        self.sort = sort
        self.limit = limit
        self.on_error = on_error
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def snapshot(self) -> List[Dict[str, Any]]:
        return self.mongo.find(self.collection_name, self.filters, sort=self.sort, limit=self.limit)

    def _emit(self) -> None:
        self.callback(self.snapshot())

    def _fail(self, error: Exception) -> None:
        logger.error(f"Subscription on {self.collection_name} stopped: {error}")
        if self.on_error:
            self.on_error(error)

    def _run(self) -> None:
        try:
            self._emit()
            with self.mongo.watch(self.collection_name) as stream:
                while not self._stop.is_set() and stream.alive:
                    change = stream.try_next()
                    if change is not None and not self._stop.is_set():
                        logger.debug(f"{self.collection_name} changed: {change.get('operationType')}")
                        self._emit()
        except (PyMongoError, DatabaseUnavailableError) as e:
            self._fail(e)
        except Exception as e:
            logger.exception(f"Unexpected error in subscription on {self.collection_name}")
            self._fail(e)

    def start(self) -> "Subscription":
        self._thread = threading.Thread(target=self._run, name=f"subscription-{self.collection_name}",
                                        daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)


def subscribe(collection_name: str, filters: Optional[Dict[str, Any]], callback: SnapshotCallback,
              sort: Optional[SortSpec] = None, limit: int = 0, mongo: Optional[MongoService] = None,
              on_error: Optional[Callable[[Exception], None]] = None) -> Callable[[], None]:
    """Start a live query and return the function that stops it."""
    subscription = Subscription(mongo or get_mongo_service(), collection_name, filters, callback,
                                sort=sort, limit=limit, on_error=on_error).start()
    return subscription.stop
