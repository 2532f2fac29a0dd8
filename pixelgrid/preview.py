"""Last-writer-wins holder for live preview recomputation.

Each input change calls ``begin()`` and later ``offer()``s its result. Results
from requests that were superseded before they finished are dropped.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestResult(Generic[T]):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issued = 0
        self._accepted = 0
        self._value: Optional[T] = None

    def begin(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def offer(self, token: int, value: T) -> bool:
        with self._lock:
            if token != self._issued:
                logger.debug("Discarding stale preview %d (latest is %d)", token, self._issued)
                return False
            self._accepted = token
            self._value = value
            return True

    def run(
        self,
        compute: Callable[[], T],
        on_error: Callable[[Exception], T],
        errors: Tuple[type, ...] = (Exception,),
    ) -> Tuple[bool, T]:
        """
        Start a request, compute it and offer the outcome. A failure is turned
        into a value by ``on_error`` and goes through the same staleness check,
        so an old failing request cannot replace a newer preview.
        Returns (accepted, value).
        """
        token = self.begin()
        try:
            value = compute()
        except errors as e:
            value = on_error(e)
        return self.offer(token, value), value

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._issued

    @property
    def value(self) -> Optional[T]:
        with self._lock:
            return self._value

    @property
    def token(self) -> int:
        """Token of the last accepted result (0 if none)."""
        with self._lock:
            return self._accepted

    def clear(self) -> None:
        with self._lock:
            self._issued += 1
            self._value = None


class PreviewSessions:
    """
    One LatestResult per UI session, so a request from one browser tab never
    supersedes another tab's preview. Least recently used sessions are evicted.
    """

    def __init__(self, max_sessions: int = 256) -> None:
        self._lock = threading.Lock()
        self._sessions: "OrderedDict[str, LatestResult]" = OrderedDict()
        self.max_sessions = max_sessions

    def for_session(self, key: Optional[str]) -> LatestResult:
        key = key or "-"
        with self._lock:
            latest = self._sessions.get(key)
            if latest is None:
                latest = self._sessions[key] = LatestResult()
                while len(self._sessions) > self.max_sessions:
                    evicted, _ = self._sessions.popitem(last=False)
                    logger.debug("Evicted preview session %s", evicted)
            else:
                self._sessions.move_to_end(key)
            return latest

    def discard(self, key: Optional[str]) -> None:
        with self._lock:
            self._sessions.pop(key or "-", None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
