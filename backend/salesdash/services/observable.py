"""
Observable values and owned subscriptions.

Live sources (identity state, the settings document, a user's profile) are
exposed as ``Observable`` values. Subscribing returns a ``Subscription``
handle that the subscriber owns and releases; ``combine_latest`` joins
several observables into one.
"""
import logging
import threading
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class Subscription:
    """Handle returned by ``Observable.subscribe``."""

    def __init__(self, on_release: Callable[[], None]):
        self._on_release = on_release
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._on_release()


class Observable(Generic[T]):

    def __init__(self, value: Any = _MISSING):
        self._value = value
        self._callbacks: List[Callable[[T], None]] = []
        self._lock = threading.RLock()

    @property
    def has_value(self) -> bool:
        return self._value is not _MISSING

    @property
    def value(self) -> Optional[T]:
        return None if self._value is _MISSING else self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(value)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        """Register ``callback``; it is called at once if a value is present."""
        with self._lock:
            self._callbacks.append(callback)
            current = self._value

        def _detach():
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        subscription = Subscription(_detach)
        if current is not _MISSING:
            callback(current)
        return subscription

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)


class Combined(Observable[Tuple]):
    """Tuple of the latest value of every source, once all have one."""

    def __init__(self, *sources: Observable):
        super().__init__()
        self._sources = sources
        self._inner: List[Subscription] = []
        for index, source in enumerate(sources):
            self._inner.append(source.subscribe(self._make_listener(index)))

    def _make_listener(self, index: int):
        def listener(_value):
            if all(s.has_value for s in self._sources):
                self.set(tuple(s.value for s in self._sources))
        return listener

    def close(self) -> None:
        for subscription in self._inner:
            subscription.release()
        self._inner = []


def combine_latest(*sources: Observable) -> Combined:
    return Combined(*sources)


class DocumentFeed(Observable[T]):
    """
    Observable backed by a live Firestore document watch.

    ``parse`` receives the document dict, or ``None`` when the document does
    not exist, and returns the value to publish.
    """

    def __init__(self, doc_ref, parse: Callable[[Optional[dict]], T]):
        super().__init__()
        self._parse = parse
        self._closed = False
        self._watch = doc_ref.on_snapshot(self._on_snapshot)

    def _on_snapshot(self, snapshots, changes, read_time):
        if self._closed:
            return
        snapshot = snapshots[0] if snapshots else None
        data = snapshot.to_dict() if snapshot is not None and snapshot.exists else None
        try:
            value = self._parse(data)
        except Exception:
            logger.exception("Could not parse snapshot for %s", getattr(snapshot, "id", "?"))
            return
        self.set(value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._watch.unsubscribe()
