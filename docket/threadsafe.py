"""
Thread-safe memoization primitives for docket.

- LazyValue: single-slot deferred computation
- KeyedLazyCache: key -> lazily generated value
- SynchronizedSet: a set shared between worker threads

Populated slots are read without taking a lock. Misses are computed under
a lock with a second check after it is acquired, so a generator runs once
even when several threads miss at the same time.

The two caches treat "nothing" differently. LazyValue never stores None or
an empty result, so the next get() tries again. KeyedLazyCache stores
whatever the generator returned, None included, so asking about a key the
registry does not know stays a single lookup.
"""

import threading
from contextlib import contextmanager
from typing import (
    Any, Callable, Dict, Generic, Hashable, Iterable, Iterator, Optional,
    Set, Tuple, TypeVar,
)

K = TypeVar('K', bound=Hashable)
V = TypeVar('V')
T = TypeVar('T')

_UNSET = object()


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    try:
        return len(value) == 0
    except TypeError:
        return False


class LazyValue(Generic[T]):
    """
    A value computed on first use.

    Example:
        versions = LazyValue(lambda: client.fetch_versions())
        versions.get()  # fetches
        versions.get()  # cached, unless the first fetch came back empty
    """

    def __init__(self, generator: Callable[[], Optional[T]]):
        self._generator = generator
        self._lock = threading.Lock()
        self._value: Any = _UNSET

    def get(self) -> Optional[T]:
        """
        Return the cached value, computing it if necessary.

        An empty result is returned to the caller but not stored.
        Exceptions from the generator propagate and leave the slot empty.
        """
        value = self._value
        if value is not _UNSET:
            return value

        with self._lock:
            if self._value is not _UNSET:
                return self._value

            value = self._generator()
            if not _is_empty(value):
                self._value = value
            return value

    def is_set(self) -> bool:
        """Whether a value has been computed and stored."""
        return self._value is not _UNSET

    def __repr__(self) -> str:
        state = 'set' if self.is_set() else 'unset'
        return f"<LazyValue {state}>"


class KeyedLazyCache(Generic[K, V]):
    """
    Mapping from key to a value built by `generator(key)` on first request.

    Example:
        packages = KeyedLazyCache(lambda version: ReleasePackage(repo, version))
        packages.for_key("1.2.3") is packages.for_key("1.2.3")  # True
    """

    def __init__(self, generator: Callable[[K], V]):
        self._generator = generator
        self._lock = threading.Lock()
        self._index: Dict[K, V] = {}

    def for_key(self, key: K, create_if_missing: bool = True) -> Optional[V]:
        """
        Get the value for `key`.

        Args:
            key: Key to look up
            create_if_missing: Generate and store the value on a miss.
                When False a miss returns None and nothing is stored.

        Returns:
            The stored value, which may itself be None
        """
        try:
            return self._index[key]
        except KeyError:
            pass

        if not create_if_missing:
            return None

        with self._lock:
            if key in self._index:
                return self._index[key]

            value = self._generator(key)
            self._index[key] = value
            return value

    def each(self) -> Iterator[Tuple[K, V]]:
        """Yield (key, value) pairs from a snapshot of the cache."""
        with self._lock:
            snapshot = list(self._index.items())
        yield from snapshot

    def each_value(self) -> Iterator[V]:
        """Yield values from a snapshot of the cache."""
        for _, value in self.each():
            yield value

    def clear(self) -> None:
        with self._lock:
            self._index.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self._index)


class SynchronizedSet(Generic[T]):
    """
    A set whose every operation runs under one reentrant lock.

    Used to collect results from many worker threads. Iteration walks a
    snapshot, so the set may be modified while someone is iterating.
    Use `locked()` to make several calls atomic:

        with names.locked():
            if "kafka" not in names:
                names.add("kafka")
    """

    def __init__(self, items: Optional[Iterable[T]] = None):
        self._items: Set[T] = set(items) if items is not None else set()
        self._lock = threading.RLock()

    @contextmanager
    def locked(self):
        """Hold the lock for a composite operation."""
        with self._lock:
            yield self

    def add(self, item: T) -> None:
        with self._lock:
            self._items.add(item)

    def add_if_absent(self, item: T) -> bool:
        """Add `item` unless present. Returns True if it was added."""
        with self._lock:
            if item in self._items:
                return False
            self._items.add(item)
            return True

    def discard(self, item: T) -> None:
        with self._lock:
            self._items.discard(item)

    def update(self, items: Iterable[T]) -> None:
        with self._lock:
            self._items.update(items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def snapshot(self) -> Set[T]:
        """Return a copy of the current contents."""
        with self._lock:
            return set(self._items)

    def sorted(self, key: Optional[Callable[[T], Any]] = None, reverse: bool = False) -> list:
        with self._lock:
            return sorted(self._items, key=key, reverse=reverse)

    def __contains__(self, item: object) -> bool:
        with self._lock:
            return item in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        with self._lock:
            return f"SynchronizedSet({self._items!r})"
