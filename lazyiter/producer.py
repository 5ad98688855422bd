"""
Lazy producers and the combinators built on top of them.

A Producer is a single-pass, pull-based sequence. Nothing runs until a value
is pulled with next() (or a for-loop), and each pull does only the work
needed for one element.
"""

import functools
import logging
from typing import Any, Callable, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from .models import PairMode

logger = logging.getLogger(__name__)

__all__ = [
    "Producer",
    "Collected",
    "keys",
    "values",
    "items",
    "each",
    "count",
    "value",
    "cycle",
    "map",
    "filter",
    "takewhile",
    "islice",
    "collect",
    "sorted",
]


class Collected(NamedTuple):
    """Elements drained from a producer, plus how many there were"""
    elements: List[Any]
    count: int


class Producer:
    """
    A single-pass iterator over a lazily computed sequence.

    Once exhausted it stays exhausted. If pulling raises, the error reaches
    the caller unchanged and the producer is treated as exhausted from then
    on, so it is never resumed in an undefined state.
    """
    __slots__ = ("_it", "_exhausted")

    def __init__(self, source: Iterable[Any]):
        self._it = iter(source)
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    # --------- iterator protocol ----------
    def __iter__(self):
        return self

    def __next__(self):
        if self._exhausted:
            raise StopIteration
        try:
            return next(self._it)
        except StopIteration:
            self._release()
            raise
        except Exception:
            logger.debug("Producer failed while pulling; marking it exhausted")
            self._release()
            raise

    # --------- chainable operators (lazy) ----------
    def map(self, func):
        return map(func, self)

    def filter(self, predicate):
        return filter(predicate, self)

    def takewhile(self, predicate):
        return takewhile(predicate, self)

    def islice(self, start=None, stop=None):
        return islice(self, start, stop)

    def cycle(self):
        return cycle(self)

    def sorted(self, key=None, reverse=False, cache_keys=True):
        return sorted(self, key=key, reverse=reverse, cache_keys=cache_keys)

    # --------- forcing evaluation ----------
    def collect(self) -> Collected:
        return collect(self)

    def to_list(self) -> List[Any]:
        return collect(self).elements

    # --------- helpers ----------
    def _release(self):
        # Drop the upstream so it can be garbage collected.
        self._exhausted = True
        self._it = iter(())


def _require_callable(name, func):
    if not callable(func):
        raise TypeError(f"{name} must be callable, got {type(func).__name__}")


# --------- source adapters ----------

def keys(container: Mapping) -> Producer:
    """Iterate over the keys of a mapping, in its own iteration order"""
    def _keys():
        for k in container:
            yield k
    return Producer(_keys())


def values(container: Mapping) -> Producer:
    """Iterate over the values of a mapping, in its own iteration order"""
    def _values():
        for v in container.values():
            yield v
    return Producer(_values())


def items(container: Mapping, mode=PairMode.FRESH) -> Producer:
    """
    Iterate over the (key, value) pairs of a mapping.

    With PairMode.FRESH every pull gets a new tuple. With PairMode.REUSE a
    single two-element list is overwritten and yielded for every entry, which
    saves an allocation per pair; copy it if you need it after the next pull.
    """
    mode = PairMode(mode)

    def _fresh():
        for k, v in container.items():
            yield (k, v)

    def _reuse():
        pair = [None, None]
        for k, v in container.items():
            pair[0], pair[1] = k, v
            yield pair

    return Producer(_reuse() if mode is PairMode.REUSE else _fresh())


def each(sequence: Sequence) -> Producer:
    """Iterate over the elements of a sequence in index order"""
    def _each():
        for element in sequence:
            yield element
    return Producer(_each())


# --------- generators ----------

def count(start=1, step=1) -> Producer:
    """
    Infinite arithmetic sequence: start, start + step, start + 2 * step, ...

    A zero step repeats start forever.
    """
    def _count(n):
        while True:
            yield n
            n = n + step
    return Producer(_count(start))


def value(v, times: Optional[int] = None) -> Producer:
    """Yield the same object v forever, or exactly `times` times"""
    if times is None:
        def _forever():
            while True:
                yield v
        return Producer(_forever())

    def _repeat(remaining):
        while remaining > 0:
            remaining -= 1
            yield v
    return Producer(_repeat(times))


def cycle(producer: Iterable[Any]) -> Producer:
    """
    Yield the elements of `producer`, then repeat them indefinitely.

    Elements are buffered as they pass through, so memory grows with the
    length of the first pass. An empty input yields nothing.
    """
    def _cycle():
        saved = []
        for element in producer:
            yield element
            saved.append(element)
        logger.debug("cycle buffered %d elements", len(saved))
        while saved:
            for element in saved:
                yield element
    return Producer(_cycle())


# --------- transform combinators ----------

def map(func: Callable[[Any], Any], producer: Iterable[Any]) -> Producer:
    """Yield func(x) for each x pulled from `producer`"""
    _require_callable("func", func)

    def _map():
        for element in producer:
            yield func(element)
    return Producer(_map())


def filter(predicate: Callable[[Any], bool], producer: Iterable[Any]) -> Producer:
    """Yield only the elements for which predicate(x) is true"""
    _require_callable("predicate", predicate)

    def _filter():
        for element in producer:
            if predicate(element):
                yield element
    return Producer(_filter())


def takewhile(predicate: Callable[[Any], bool], producer: Iterable[Any]) -> Producer:
    """Yield elements until the first one for which predicate(x) is false"""
    _require_callable("predicate", predicate)

    def _takewhile():
        for element in producer:
            if not predicate(element):
                return
            yield element
    return Producer(_takewhile())


def islice(producer: Iterable[Any], start: Optional[int] = None, stop: Optional[int] = None) -> Producer:
    """
    Yield the elements at 1-based positions start..stop, both inclusive.

    `start` defaults to 1. Without `stop`, everything from `start` onwards is
    yielded. When `stop - start < 1` nothing is yielded and `producer` is not
    pulled at all. Once position `stop` has been yielded the upstream is not
    pulled again, so an infinite upstream is never drained.
    """
    if start is None:
        start = 1

    def _islice():
        if stop is not None and stop - start < 1:
            return
        current = 0
        for element in producer:
            current += 1
            if current >= start:
                yield element
            if stop is not None and current >= stop:
                return
    return Producer(_islice())


# --------- terminal operations ----------

def collect(producer: Iterable[Any]) -> Collected:
    """
    Drain `producer` into a list.

    Runs in O(n) time and memory, and never returns for an infinite producer.
    """
    elements = []
    n = 0
    for element in producer:
        elements.append(element)
        n += 1
    return Collected(elements, n)


def _key_comparator(key):
    # Mirrors a "less than" comparator: key(a) < key(b), recomputed each call.
    def compare(a, b):
        ka, kb = key(a), key(b)
        if ka < kb:
            return -1
        if kb < ka:
            return 1
        return 0
    return functools.cmp_to_key(compare)


def sorted(producer: Iterable[Any], key: Optional[Callable[[Any], Any]] = None,
           reverse: bool = False, cache_keys: bool = True) -> Producer:
    """
    Consume `producer` and iterate over its elements in sorted order.

    `key` retrieves the sort key of each element; without it elements are
    compared directly. With `cache_keys` (the default) the key is computed once
    per element. Pass cache_keys=False to recompute it on every comparison.
    When `reverse` is set the sorted elements are yielded back to front.

    The whole input is materialized first, so this needs O(n) memory and a
    finite producer.
    """
    if key is not None:
        _require_callable("key", key)

    elements, n = collect(producer)
    if key is None:
        elements.sort()
    elif cache_keys:
        elements.sort(key=key)
    else:
        elements.sort(key=_key_comparator(key))
    logger.debug("sorted %d elements (reverse=%s, cache_keys=%s)", n, reverse, cache_keys)

    if reverse:
        return Producer(reversed(elements))
    return Producer(elements)
