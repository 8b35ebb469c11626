"""Graph and dataset abstractions and their in-memory backends.

A backend only implements ``insert``, ``remove`` and ``triples`` (``quads``
for datasets); pattern matching, size, membership and bulk operations derive
from those. Backends override derived operations when they can do better,
as :class:`IndexedGraph` does for pattern matching.

Pattern positions accept a matcher: ``ANY`` (or ``None``, or a
:class:`~rdfkit.terms.Variable`) matches anything, a term matches itself, a
collection of terms matches its members and a callable is used as a
predicate. In the graph position of dataset patterns ``None`` denotes the
default graph, so only ``ANY`` or a ``Variable`` is a wildcard there.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from typing import Iterable, Iterator

from .stream import Source, as_source
from .terms import GraphName, Term, Variable
from .triples import Quad, Triple

logger = logging.getLogger(__name__)


class _AnyTerm:
    __slots__ = ()

    def __repr__(self) -> str:
        return "ANY"


ANY = _AnyTerm()


class TermMatcher:
    """A compiled pattern position."""

    __slots__ = ("term", "_test", "wildcard")

    def __init__(self, spec: object, none_is_wildcard: bool = True):
        self.term: Term | None = None
        self.wildcard = False
        self._test: Callable[[object], bool] | None = None
        if spec is ANY or isinstance(spec, Variable) or (spec is None and none_is_wildcard):
            self.wildcard = True
        elif spec is None:
            self._test = lambda value: value is None
        elif isinstance(spec, Term):
            self.term = spec
        elif callable(spec):
            self._test = spec
        elif isinstance(spec, Collection) and not isinstance(spec, (str, bytes)):
            members = frozenset(spec)
            self._test = lambda value: value in members
        else:
            raise TypeError(f"invalid term matcher: {spec!r}")

    @property
    def exact(self) -> bool:
        return self.term is not None

    def matches(self, value: object) -> bool:
        if self.wildcard:
            return True
        if self.term is not None:
            return value == self.term
        return bool(self._test(value))


class Graph(ABC):
    """A collection of triples belonging to one RDF graph."""

    @abstractmethod
    def triples(self) -> Source[Triple]:
        """Return a source over every triple of the graph."""

    @abstractmethod
    def insert(self, triple: Triple) -> bool:
        """Add a triple; return False if the backend already held it."""

    @abstractmethod
    def remove(self, triple: Triple) -> bool:
        """Remove a triple; return whether it was present."""

    def triples_matching(self, subject=ANY, predicate=ANY, obj=ANY) -> Source[Triple]:
        """Return a source over the triples matching the given pattern."""
        ms, mp, mo = TermMatcher(subject), TermMatcher(predicate), TermMatcher(obj)
        return Source(
            (
                t
                for t in self.triples()
                if ms.matches(t.subject) and mp.matches(t.predicate) and mo.matches(t.object)
            ),
            name=type(self).__name__,
        )

    def iter(self) -> Source[Triple]:
        return self.triples()

    def __iter__(self) -> Iterator[Triple]:
        return iter(self.triples())

    def __len__(self) -> int:
        return sum(1 for _ in self.triples())

    def contains(self, subject=ANY, predicate=ANY, obj=ANY) -> bool:
        """Return whether at least one triple matches the pattern."""
        for _ in self.triples_matching(subject, predicate, obj):
            return True
        return False

    def __contains__(self, triple: object) -> bool:
        if not isinstance(triple, Triple):
            return False
        return self.contains(triple.subject, triple.predicate, triple.object)

    def insert_all(self, items) -> int:
        """Insert every triple of a source, iterable or graph; see :meth:`Source.collect_into`."""
        return as_source(items).collect_into(self)

    def remove_all(self, items) -> int:
        return as_source(items).remove_from(self)

    def remove_matching(self, subject=ANY, predicate=ANY, obj=ANY) -> int:
        """Remove the triples matching a pattern and return how many were removed."""
        matched = list(self.triples_matching(subject, predicate, obj))
        return sum(1 for t in matched if self.remove(t))

    def clear(self) -> None:
        self.remove_matching()

    def subjects(self) -> Iterator[Term]:
        return _distinct(t.subject for t in self.triples())

    def predicates(self) -> Iterator[Term]:
        return _distinct(t.predicate for t in self.triples())

    def objects(self) -> Iterator[Term]:
        return _distinct(t.object for t in self.triples())


def _distinct(terms: Iterable[Term]) -> Iterator[Term]:
    seen: set[Term] = set()
    for term in terms:
        if term not in seen:
            seen.add(term)
            yield term


class HashGraph(Graph):
    """Set-based graph keeping insertion order."""

    def __init__(self, triples: Iterable[Triple] = ()):
        self._triples: dict[Triple, None] = {}
        if triples:
            self.insert_all(triples)

    def triples(self) -> Source[Triple]:
        return Source(list(self._triples), name="HashGraph")

    def insert(self, triple: Triple) -> bool:
        if triple in self._triples:
            return False
        self._triples[triple] = None
        return True

    def remove(self, triple: Triple) -> bool:
        if triple not in self._triples:
            return False
        del self._triples[triple]
        return True

    def __len__(self) -> int:
        return len(self._triples)

    def __contains__(self, triple: object) -> bool:
        return triple in self._triples


class IndexedGraph(HashGraph):
    """Graph with redundant subject, predicate and object indexes.

    Each triple is reachable through three indexes; lookups pick the index
    of the first exact position, and a pattern without exact positions walks
    the triple set itself, so no triple is produced twice.
    """

    def __init__(self, triples: Iterable[Triple] = ()):
        self._spo: dict[Term, dict[Term, dict[Term, Triple]]] = {}
        self._pos: dict[Term, dict[Term, dict[Term, Triple]]] = {}
        self._osp: dict[Term, dict[Term, dict[Term, Triple]]] = {}
        super().__init__(triples)

    def insert(self, triple: Triple) -> bool:
        if not super().insert(triple):
            return False
        s, p, o = triple
        self._spo.setdefault(s, {}).setdefault(p, {})[o] = triple
        self._pos.setdefault(p, {}).setdefault(o, {})[s] = triple
        self._osp.setdefault(o, {}).setdefault(s, {})[p] = triple
        return True

    def remove(self, triple: Triple) -> bool:
        if not super().remove(triple):
            return False
        s, p, o = triple
        _unindex(self._spo, s, p, o)
        _unindex(self._pos, p, o, s)
        _unindex(self._osp, o, s, p)
        return True

    def triples_matching(self, subject=ANY, predicate=ANY, obj=ANY) -> Source[Triple]:
        ms, mp, mo = TermMatcher(subject), TermMatcher(predicate), TermMatcher(obj)
        if ms.exact:
            candidates = _walk(self._spo, ms, mp, mo)
        elif mp.exact:
            candidates = _walk(self._pos, mp, mo, ms)
        elif mo.exact:
            candidates = _walk(self._osp, mo, ms, mp)
        else:
            candidates = list(self._triples)
        return Source(
            (
                t
                for t in candidates
                if ms.matches(t.subject) and mp.matches(t.predicate) and mo.matches(t.object)
            ),
            name="IndexedGraph",
        )


def _walk(index: dict, m1: TermMatcher, m2: TermMatcher, m3: TermMatcher) -> list:
    """Collect the leaves of a three-level index reachable through exact matchers."""
    level2 = index.get(m1.term)
    if level2 is None:
        return []
    if m2.exact:
        level3s = [level2[m2.term]] if m2.term in level2 else []
    else:
        level3s = list(level2.values())
    out = []
    for leaves in level3s:
        if m3.exact:
            if m3.term in leaves:
                out.append(leaves[m3.term])
        else:
            out.extend(leaves.values())
    return out


def _unindex(index: dict, k1: Term, k2: Term, k3: Term) -> None:
    level2 = index[k1]
    level3 = level2[k2]
    del level3[k3]
    if not level3:
        del level2[k2]
        if not level2:
            del index[k1]


class ListGraph(Graph):
    """Multiset graph: inserting a triple twice stores it twice."""

    def __init__(self, triples: Iterable[Triple] = ()):
        self._triples: list[Triple] = []
        if triples:
            self.insert_all(triples)

    def triples(self) -> Source[Triple]:
        return Source(list(self._triples), name="ListGraph")

    def insert(self, triple: Triple) -> bool:
        self._triples.append(triple)
        return True

    def remove(self, triple: Triple) -> bool:
        """Remove one occurrence of `triple`."""
        try:
            self._triples.remove(triple)
        except ValueError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._triples)


class Dataset(ABC):
    """A collection of quads: a default graph and any number of named graphs."""

    @abstractmethod
    def quads(self) -> Source[Quad]:
        """Return a source over every quad of the dataset."""

    @abstractmethod
    def insert(self, quad: Quad) -> bool:
        """Add a quad; return False if it was already present."""

    @abstractmethod
    def remove(self, quad: Quad) -> bool:
        """Remove a quad; return whether it was present."""

    def quads_matching(self, subject=ANY, predicate=ANY, obj=ANY, graph=ANY) -> Source[Quad]:
        """Return a source over matching quads; `graph=None` selects the default graph."""
        ms, mp, mo = TermMatcher(subject), TermMatcher(predicate), TermMatcher(obj)
        mg = TermMatcher(graph, none_is_wildcard=False)
        return Source(
            (
                q
                for q in self.quads()
                if mg.matches(q.graph)
                and ms.matches(q.subject)
                and mp.matches(q.predicate)
                and mo.matches(q.object)
            ),
            name=type(self).__name__,
        )

    def iter(self) -> Source[Quad]:
        return self.quads()

    def __iter__(self) -> Iterator[Quad]:
        return iter(self.quads())

    def __len__(self) -> int:
        return sum(1 for _ in self.quads())

    def contains(self, subject=ANY, predicate=ANY, obj=ANY, graph=ANY) -> bool:
        for _ in self.quads_matching(subject, predicate, obj, graph):
            return True
        return False

    def __contains__(self, quad: object) -> bool:
        if not isinstance(quad, Quad):
            return False
        return self.contains(quad.subject, quad.predicate, quad.object, quad.graph)

    def graph(self, name: GraphName | None) -> DatasetGraph:
        """Return a live view of one graph of the dataset (None for the default graph)."""
        return DatasetGraph(self, name)

    @property
    def default_graph(self) -> DatasetGraph:
        return self.graph(None)

    def graph_names(self) -> Iterator[GraphName]:
        """Yield the names of the named graphs holding at least one quad."""
        return _distinct(q.graph for q in self.quads() if q.graph is not None)

    def insert_all(self, items) -> int:
        """Insert quads (or triples, into the default graph); see :meth:`Source.collect_into`."""
        return as_source(items).collect_into(self)

    def remove_all(self, items) -> int:
        return as_source(items).remove_from(self)

    def remove_matching(self, subject=ANY, predicate=ANY, obj=ANY, graph=ANY) -> int:
        matched = list(self.quads_matching(subject, predicate, obj, graph))
        return sum(1 for q in matched if self.remove(q))

    def clear(self) -> None:
        self.remove_matching()


class DatasetGraph(Graph):
    """One graph of a dataset, seen through the graph interface."""

    def __init__(self, dataset: Dataset, name: GraphName | None):
        self.dataset = dataset
        self.name = name

    def triples(self) -> Source[Triple]:
        return self.dataset.quads_matching(graph=self.name).map_items(Quad.to_triple)

    def triples_matching(self, subject=ANY, predicate=ANY, obj=ANY) -> Source[Triple]:
        return self.dataset.quads_matching(subject, predicate, obj, self.name).map_items(
            Quad.to_triple
        )

    def insert(self, triple: Triple) -> bool:
        return self.dataset.insert(triple.to_quad(self.name))

    def remove(self, triple: Triple) -> bool:
        return self.dataset.remove(triple.to_quad(self.name))


class HashDataset(Dataset):
    """Set-based dataset with a per-graph index."""

    def __init__(self, quads: Iterable[Quad] = ()):
        self._quads: dict[Quad, None] = {}
        self._graphs: dict[GraphName | None, dict[Quad, None]] = {}
        if quads:
            self.insert_all(quads)

    def quads(self) -> Source[Quad]:
        return Source(list(self._quads), name="HashDataset")

    def insert(self, quad: Quad) -> bool:
        if quad in self._quads:
            return False
        self._quads[quad] = None
        self._graphs.setdefault(quad.graph, {})[quad] = None
        return True

    def remove(self, quad: Quad) -> bool:
        if quad not in self._quads:
            return False
        del self._quads[quad]
        bucket = self._graphs[quad.graph]
        del bucket[quad]
        if not bucket:
            del self._graphs[quad.graph]
        return True

    def quads_matching(self, subject=ANY, predicate=ANY, obj=ANY, graph=ANY) -> Source[Quad]:
        if (isinstance(graph, Term) and not isinstance(graph, Variable)) or graph is None:
            ms, mp, mo = TermMatcher(subject), TermMatcher(predicate), TermMatcher(obj)
            bucket = list(self._graphs.get(graph, ()))
            return Source(
                (
                    q
                    for q in bucket
                    if ms.matches(q.subject) and mp.matches(q.predicate) and mo.matches(q.object)
                ),
                name="HashDataset",
            )
        return super().quads_matching(subject, predicate, obj, graph)

    def graph_names(self) -> Iterator[GraphName]:
        return iter([name for name in self._graphs if name is not None])

    def __len__(self) -> int:
        return len(self._quads)

    def __contains__(self, quad: object) -> bool:
        return quad in self._quads
