"""
Lazy, memoized, index-addressable numeric sequences.

A Series exposes ``length`` and ``at(index)``. Negative indices count back
from the end (``at(-1)`` is the last element) and out-of-range indices return
``NO_VALUE`` (None) instead of raising.

An Indicator is a Series backed by a per-index function plus a private cache:
the function runs at most once per index per instance, no matter how many
downstream indicators read that index or in which order. Composition creates
a new Indicator with its own cache; caches are never shared between
instances.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Generic, Iterator, List, Optional, Protocol, Sequence, TypeVar, Union, runtime_checkable

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

# Explicit "no value" result for out-of-range reads
NO_VALUE = None

# Cache slot marker; distinct from every computable value including None/0/False
_UNSET: Any = object()


@runtime_checkable
class Series(Protocol[T_co]):
    """Read-only, length-bounded, index-addressable sequence."""

    @property
    def length(self) -> int:
        ...

    def at(self, index: int) -> Optional[T_co]:
        """
        Returns the item located at the specified index.

        Args:
            index: Zero-based index. A negative index counts back from the last item.

        Returns:
            The value, or NO_VALUE if the index is out of range
        """
        ...

    def __len__(self) -> int:
        ...

    def __iter__(self) -> Iterator[Optional[T_co]]:
        ...


def normalize_index(index: int, length: int) -> Optional[int]:
    """Resolve a possibly negative index, or None if it falls outside [0, length)."""
    if index < 0:
        index += length
    if index < 0 or index >= length:
        return None
    return index


class ListSeries(Generic[T]):
    """
    Read-only Series view over a Python sequence (list, tuple, deque).

    The view is live: it reflects later mutations of the underlying
    sequence, including its length.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Sequence[T]):
        self._data = data

    @property
    def length(self) -> int:
        return len(self._data)

    def at(self, index: int) -> Optional[T]:
        index = normalize_index(index, len(self._data))
        if index is None:
            return NO_VALUE
        return self._data[index]

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Optional[T]]:
        return iter(list(self._data))

    def __repr__(self) -> str:
        return f"ListSeries(length={len(self._data)})"


SeriesLike = Union[Series, Sequence]


def as_series(source: SeriesLike) -> Series:
    """Return source unchanged if it is a Series, else wrap it in a ListSeries."""
    if isinstance(source, (Indicator, ListSeries)):
        return source
    if hasattr(source, "at") and hasattr(source, "length"):
        return source
    return ListSeries(source)


class Indicator(Generic[T]):
    """
    Series derived from a memoized per-index function.

    Args:
        fn: Pure function of the index. It may read other Series (which
            memoize independently) or this indicator's own earlier indices
            for recurrences.
        length: Fixed length of the indicator
        name: Label used in repr

    The cache is a fixed-capacity list allocated once. A re-entrant lock
    guards the miss path so that concurrent first reads of the same index
    still evaluate fn only once.
    """

    def __init__(self, fn: Callable[[int], T], length: int, name: str = "Indicator"):
        self._fn = fn
        self._length = max(0, int(length))
        self._cache: List[Any] = [_UNSET] * self._length
        self._lock = threading.RLock()
        self.name = name

    @property
    def length(self) -> int:
        return self._length

    def at(self, index: int) -> Optional[T]:
        index = normalize_index(index, self._length)
        if index is None:
            return NO_VALUE
        value = self._cache[index]
        if value is not _UNSET:
            return value
        with self._lock:
            value = self._cache[index]
            if value is _UNSET:
                value = self._fn(index)
                self._cache[index] = value
        return value

    def is_cached(self, index: int) -> bool:
        """True if the value at index has already been computed."""
        index = normalize_index(index, self._length)
        return index is not None and self._cache[index] is not _UNSET

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[Optional[T]]:
        for i in range(self._length):
            yield self.at(i)

    def __repr__(self) -> str:
        return f"{self.name}(length={self._length})"

    __str__ = __repr__


def value_at(source: Series, index: int, default: Any = NO_VALUE) -> Any:
    """source.at(index), substituting default for NO_VALUE."""
    value = source.at(index)
    return default if value is NO_VALUE else value


def map_series(
    source: SeriesLike,
    fn: Callable[[Any, int], T],
    name: str = "Indicator",
) -> Indicator[T]:
    """
    Build an Indicator of the same length as source.

    fn receives (source value at i, i) and returns the output at i.
    """
    source = as_series(source)
    return Indicator(lambda i: fn(source.at(i), i), source.length, name)
