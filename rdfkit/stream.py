"""Single-pass, fallible sources of triples and quads.

A :class:`Source` is a plain iterator with two extra guarantees:

* it is consumed at most once: items already pulled are never produced again;
* an error terminates it: the :class:`~rdfkit.errors.RdfError` is raised once,
  kept on :attr:`Source.error`, and every later pull stops immediately.

Streaming means failure is not atomic. :meth:`Source.collect_into` inserts
items one by one, so when the source fails after N items the target keeps
those N items and the error is raised to the caller; nothing is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Iterator, TypeVar

from .errors import RdfError, StructuralError
from .triples import Quad, Triple

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """One pulled element: either a value or the terminal error."""

    value: T | None = None
    error: RdfError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the error this outcome carries."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class Source(Generic[T]):
    """A lazy, single-pass producer of items whose pulls may fail."""

    def __init__(self, items: Iterable[T], name: str = "<source>"):
        self._items = iter(items)
        self.name = name
        self.error: RdfError | None = None
        self.exhausted = False
        self.count = 0

    @classmethod
    def from_iterable(cls, items: Iterable[T], name: str = "<iterable>") -> Source[T]:
        return cls(items, name=name)

    @classmethod
    def failing(cls, items: Iterable[T], error: RdfError, name: str = "<failing>") -> Source[T]:
        """Build a source that yields `items` then fails with `error`."""
        def produce() -> Iterator[T]:
            yield from items
            raise error

        return cls(produce(), name=name)

    def __iter__(self) -> Source[T]:
        return self

    def __next__(self) -> T:
        if self.exhausted:
            raise StopIteration
        try:
            item = next(self._items)
        except StopIteration:
            self.exhausted = True
            raise
        except RdfError as exc:
            self.exhausted = True
            self.error = exc
            logger.debug("%s failed after %d items: %s", self.name, self.count, exc)
            raise
        self.count += 1
        return item

    def results(self) -> Iterator[Outcome[T]]:
        """Yield each item as a successful outcome, then the error (if any) as a failed one."""
        while True:
            try:
                item = next(self)
            except StopIteration:
                return
            except RdfError as exc:
                yield Outcome(error=exc)
                return
            yield Outcome(value=item)

    def map_items(self, fn: Callable[[T], U]) -> Source[U]:
        """Return a source applying `fn` to each item of this one."""
        return Source((fn(item) for item in self), name=self.name)

    def filter_items(self, predicate: Callable[[T], bool]) -> Source[T]:
        """Return a source keeping only the items for which `predicate` is true."""
        return Source((item for item in self if predicate(item)), name=self.name)

    def for_each(self, fn: Callable[[T], object]) -> int:
        """Apply `fn` to every item, stopping at (and raising) the first error.

        Returns the number of items processed.
        """
        processed = 0
        for item in self:
            fn(item)
            processed += 1
        return processed

    def collect_into(self, target) -> int:
        """Insert every item into a graph or dataset and return how many were new.

        Items inserted before an error stay in `target`; the error is raised.
        Triples are placed in the default graph of a dataset; quads can only
        be collected into a graph when they belong to the default graph.
        """
        insert = _item_adapter(target, target.insert)
        inserted = 0
        for item in self:
            if insert(item):
                inserted += 1
        logger.debug("%s: inserted %d new items", self.name, inserted)
        return inserted

    def remove_from(self, target) -> int:
        """Remove every item from a graph or dataset and return how many were present."""
        remove = _item_adapter(target, target.remove)
        removed = 0
        for item in self:
            if remove(item):
                removed += 1
        return removed

    def to_list(self) -> list[T]:
        """Drain the source into a list, raising its error if it fails."""
        return list(self)


def _item_adapter(target, method: Callable[..., bool]) -> Callable[[object], bool]:
    """Adapt triples/quads to the item kind `target` stores."""
    from .graph import Dataset

    if isinstance(target, Dataset):
        def to_dataset(item: object) -> bool:
            if isinstance(item, Triple):
                item = item.to_quad()
            return method(item)

        return to_dataset

    def to_graph(item: object) -> bool:
        if isinstance(item, Quad):
            if item.graph is not None:
                raise StructuralError(
                    f"cannot insert a quad of named graph {item.graph} into a graph"
                )
            item = item.to_triple()
        return method(item)

    return to_graph


def as_source(items) -> Source:
    """Wrap a graph, dataset, source or iterable into a :class:`Source`."""
    if isinstance(items, Source):
        return items
    from .graph import Dataset, Graph

    if isinstance(items, Graph):
        return items.triples()
    if isinstance(items, Dataset):
        return items.quads()
    return Source(items)
