"""Turtle and TriG serializers.

Line mode writes one N-Triples compatible statement per line as items arrive.
Pretty mode buffers the whole input, groups statements by subject, compacts
well-formed RDF lists into ``( ... )`` and declares prefixes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, TextIO

from .errors import StructuralError
from .iri import encode_iri_ref, validate_iri
from .ntriples import format_graph_label_nt, format_statement_nt
from .scanner import escape_string_value, is_hex, is_pn_chars, is_pn_chars_base, is_pn_chars_u
from .terms import BlankNode, GraphName, Iri, Literal, Node, Subject, Term
from .triples import Quad, Triple
from .vocab import KNOWN_PREFIXES, RDF_FIRST_IRI, RDF_NIL_IRI, RDF_REST_IRI, RDF_TYPE_IRI, XSD_STRING_IRI

logger = logging.getLogger(__name__)

ListHeads = dict[BlankNode, list[Node]]

LIST_MODES = ("auto", "off")


@dataclass(frozen=True)
class TurtleSerializationOptions:
    """Options controlling Turtle and TriG serialization.

    `prefixes` may be given as a mapping or as ``(prefix, namespace)`` pairs;
    it is stored as a tuple of pairs.
    """

    pretty: bool = False
    prefixes: tuple[tuple[str, str], ...] = ()
    ascii_only: bool = False
    prefix_threshold: int = 2
    lists: str = "auto"
    auto_prefixes: bool = True
    output_base: str | None = None

    def __post_init__(self) -> None:
        raw = self.prefixes.items() if isinstance(self.prefixes, Mapping) else self.prefixes
        prefixes = tuple((prefix, namespace) for prefix, namespace in raw)
        for prefix, namespace in prefixes:
            if not is_valid_prefix_label(prefix):
                raise ValueError(f"invalid prefix label '{prefix}'")
            validate_iri(namespace, require_absolute=False, allow_empty=True)
        if self.lists not in LIST_MODES:
            raise ValueError(f"unsupported lists mode: {self.lists}")
        if self.prefix_threshold < 1:
            raise ValueError("prefix_threshold must be at least 1")
        if self.output_base is not None:
            validate_iri(self.output_base, require_absolute=True, allow_empty=False)
        object.__setattr__(self, "prefixes", prefixes)


def split_iri_for_prefix(iri: str) -> tuple[str, str] | None:
    """Split an IRI into a candidate namespace/local-name pair."""
    if not iri:
        return None
    scheme_sep = iri.find(":")
    if scheme_sep < 0:
        return None

    cut = -1
    for idx, ch in enumerate(iri):
        if ch in "#/" or (ch == ":" and idx > scheme_sep):
            cut = idx
    if cut < 0:
        return None
    return iri[: cut + 1], iri[cut + 1 :]


def escape_pn_local(local: str, ascii_only: bool = False) -> str | None:
    """Escape a local name for use in a prefixed name, or return None if impossible."""
    if local == "":
        return ""
    if ascii_only and not local.isascii():
        return None
    out: list[str] = []
    endable = False
    i = 0
    while i < len(local):
        ch = local[i]
        first = i == 0
        last = i == len(local) - 1

        if ch == "%" and i + 2 < len(local) and is_hex(local[i + 1]) and is_hex(local[i + 2]):
            out.append(local[i : i + 3])
            endable = True
            i += 3
            continue

        if ch == ".":
            if last:
                out.append("\\.")
                endable = True
            else:
                out.append(".")
                endable = False
            i += 1
            continue

        if first and (ch == ":" or ch.isdigit() or is_pn_chars_u(ch)):
            out.append(ch)
        elif not first and (ch == ":" or is_pn_chars(ch)):
            out.append(ch)
        elif ch in "_~.-!$&'()*+,;=/?#@%":
            out.append("\\" + ch)
        else:
            return None
        endable = True
        i += 1

    if not endable:
        return None
    return "".join(out)


def is_valid_prefix_label(prefix: str) -> bool:
    """Return whether a string is a valid Turtle prefix label."""
    if prefix == "":
        return True
    if ":" in prefix:
        return False
    if not is_pn_chars_base(prefix[0]):
        return False
    if prefix[-1] == ".":
        return False
    return all(ch == "." or is_pn_chars(ch) for ch in prefix[1:])


def collect_list_compaction(triples: list[Triple]) -> tuple[ListHeads, set[int]]:
    """Find well-formed rdf:first/rdf:rest chains that can be written as ``( ... )``.

    Returns the list items by head node and the indices of the triples the
    compacted lists replace. A chain qualifies when every node is a blank node
    with exactly one rdf:first and one rdf:rest and nothing else, the head is
    referenced exactly once from outside the chain, and every other node is
    referenced only by the previous rdf:rest.
    """
    by_subject: dict[BlankNode, dict[str, list[tuple[Node, int]]]] = {}
    incoming_total: dict[BlankNode, int] = {}
    incoming_rest: dict[BlankNode, int] = {}
    referenced_at: dict[BlankNode, int] = {}

    for idx, (subject, predicate, obj) in enumerate(triples):
        if isinstance(subject, BlankNode):
            pred_map = by_subject.setdefault(subject, {})
            pred_map.setdefault(predicate.value, []).append((obj, idx))
        if isinstance(obj, BlankNode):
            incoming_total[obj] = incoming_total.get(obj, 0) + 1
            if predicate.value == RDF_REST_IRI:
                incoming_rest[obj] = incoming_rest.get(obj, 0) + 1
            else:
                referenced_at[obj] = idx

    chains: dict[BlankNode, tuple[list[Node], list[int]]] = {}
    for head in by_subject:
        non_rest_refs = incoming_total.get(head, 0) - incoming_rest.get(head, 0)
        if non_rest_refs != 1 or incoming_rest.get(head, 0) != 0:
            continue
        chain = _walk_list_chain(head, by_subject, incoming_total, incoming_rest)
        if chain is None or referenced_at[head] in chain[1]:
            continue
        chains[head] = chain

    # A head must be reachable from a triple that stays in the output.
    while True:
        owner = {idx: head for head, (_, indices) in chains.items() for idx in indices}
        unreachable = set()
        for head in chains:
            seen = {head}
            idx = referenced_at[head]
            while idx in owner:
                outer = owner[idx]
                if outer in seen:
                    unreachable.add(head)
                    break
                seen.add(outer)
                idx = referenced_at[outer]
        if not unreachable:
            break
        for head in unreachable:
            del chains[head]

    compacted_heads: ListHeads = {head: items for head, (items, _) in chains.items()}
    removed_indices = {idx for _, indices in chains.values() for idx in indices}
    return compacted_heads, removed_indices


def _walk_list_chain(
    head: BlankNode,
    by_subject: dict[BlankNode, dict[str, list[tuple[Node, int]]]],
    incoming_total: dict[BlankNode, int],
    incoming_rest: dict[BlankNode, int],
) -> tuple[list[Node], list[int]] | None:
    items: list[Node] = []
    chain_indices: list[int] = []
    visited: set[BlankNode] = set()
    current: Node = head

    while True:
        if not isinstance(current, BlankNode) or current in visited:
            return None
        visited.add(current)

        pred_map = by_subject.get(current)
        if pred_map is None or set(pred_map) != {RDF_FIRST_IRI, RDF_REST_IRI}:
            return None
        first_entries = pred_map[RDF_FIRST_IRI]
        rest_entries = pred_map[RDF_REST_IRI]
        if len(first_entries) != 1 or len(rest_entries) != 1:
            return None

        first_obj, first_idx = first_entries[0]
        rest_obj, rest_idx = rest_entries[0]
        items.append(first_obj)
        chain_indices.extend([first_idx, rest_idx])

        if current != head and (
            incoming_total.get(current, 0) != 1 or incoming_rest.get(current, 0) != 1
        ):
            return None

        if isinstance(rest_obj, Iri) and rest_obj.value == RDF_NIL_IRI:
            return items, chain_indices
        current = rest_obj


def iter_iris_in_rendered_node(
    node: Node,
    list_heads: ListHeads,
    active_lists: set[BlankNode] | None = None,
) -> Iterator[str]:
    """Yield the IRIs that appear in the Turtle rendering of `node`."""
    if active_lists is None:
        active_lists = set()

    if isinstance(node, Iri):
        yield node.value
    elif isinstance(node, BlankNode):
        if node in list_heads and node not in active_lists:
            active_lists.add(node)
            for item in list_heads[node]:
                yield from iter_iris_in_rendered_node(item, list_heads, active_lists)
            active_lists.remove(node)
    elif isinstance(node, Literal):
        if node.language is None and node.datatype.value != XSD_STRING_IRI:
            yield node.datatype.value
    else:
        raise TypeError(f"unsupported node type: {type(node)!r}")


def choose_turtle_prefixes(
    triples: list[Triple],
    list_heads: ListHeads,
    threshold: int = 2,
    ascii_only: bool = False,
) -> dict[str, str]:
    """Choose automatic prefixes for namespaces used in predicate position or `threshold` times.

    Well-known namespaces get their usual labels; the others are numbered
    ``ns1``, ``ns2``... by decreasing use.
    """
    stats: dict[str, dict[str, int]] = {}

    def register_iri(iri: str, is_predicate: bool) -> None:
        """Record namespace usage statistics for one IRI candidate."""
        split = split_iri_for_prefix(iri)
        if split is None:
            return
        namespace, local = split
        if escape_pn_local(local, ascii_only) is None:
            return
        stat = stats.setdefault(namespace, {"count": 0, "pred_count": 0})
        stat["count"] += 1
        if is_predicate:
            stat["pred_count"] += 1

    for subject, predicate, obj in triples:
        for iri in iter_iris_in_rendered_node(subject, list_heads):
            register_iri(iri, is_predicate=False)
        if predicate.value != RDF_TYPE_IRI:
            register_iri(predicate.value, is_predicate=True)
        for iri in iter_iris_in_rendered_node(obj, list_heads):
            register_iri(iri, is_predicate=False)

    selected = [
        namespace
        for namespace, stat in stats.items()
        if namespace in KNOWN_PREFIXES or stat["pred_count"] > 0 or stat["count"] >= threshold
    ]

    assigned: dict[str, str] = {}
    used_prefixes: set[str] = set()
    for namespace in selected:
        known = KNOWN_PREFIXES.get(namespace)
        if known is None or known in used_prefixes:
            continue
        assigned[namespace] = known
        used_prefixes.add(known)

    dynamic_namespaces = [ns for ns in selected if ns not in assigned]
    dynamic_namespaces.sort(key=lambda ns: (-stats[ns]["pred_count"], -stats[ns]["count"], ns))

    serial = 1
    for namespace in dynamic_namespaces:
        while True:
            candidate = f"ns{serial}"
            serial += 1
            if candidate not in used_prefixes:
                break
        assigned[namespace] = candidate
        used_prefixes.add(candidate)

    logger.debug("selected %d automatic prefixes out of %d namespaces", len(assigned), len(stats))
    ordered = sorted(assigned.items(), key=lambda item: item[1])
    return {prefix: namespace for namespace, prefix in ordered}


def merge_prefix_maps(
    manual_prefixes: tuple[tuple[str, str], ...],
    auto_prefixes: dict[str, str],
    auto_enabled: bool,
) -> dict[str, str]:
    """Merge manual and automatic prefixes; manual bindings win on label and namespace."""
    merged: dict[str, str] = {}
    used_namespaces: set[str] = set()

    for prefix, namespace in manual_prefixes:
        merged[prefix] = namespace
        used_namespaces.add(namespace)

    if not auto_enabled:
        return merged

    for prefix, namespace in auto_prefixes.items():
        if prefix in merged or namespace in used_namespaces:
            continue
        merged[prefix] = namespace
        used_namespaces.add(namespace)
    return merged


class TurtleFormatter:
    """Render terms with a fixed prefix map and set of compacted lists."""

    def __init__(self, prefixes: dict[str, str], list_heads: ListHeads, ascii_only: bool = False):
        self.prefixes = prefixes
        self.list_heads = list_heads
        self.ascii_only = ascii_only
        self._by_namespace: dict[str, str] = {}
        for prefix, namespace in prefixes.items():
            self._by_namespace.setdefault(namespace, prefix)

    def iri(self, iri: str) -> str:
        """Format an IRI as a prefixed name when possible, else as `<...>`."""
        split = split_iri_for_prefix(iri)
        if split is not None:
            namespace, local = split
            prefix = self._by_namespace.get(namespace)
            if prefix is not None:
                escaped = escape_pn_local(local, self.ascii_only)
                if escaped is not None:
                    return f"{prefix}:{escaped}"
        return encode_iri_ref(iri, self.ascii_only)

    def predicate(self, predicate: Iri) -> str:
        if predicate.value == RDF_TYPE_IRI:
            return "a"
        return self.iri(predicate.value)

    def node(self, node: Term, active_lists: set[BlankNode] | None = None) -> str:
        """Format node turtle for output."""
        if active_lists is None:
            active_lists = set()

        if isinstance(node, Iri):
            return self.iri(node.value)
        if isinstance(node, BlankNode):
            if node in self.list_heads and node not in active_lists:
                active_lists.add(node)
                inner = " ".join(self.node(item, active_lists) for item in self.list_heads[node])
                active_lists.remove(node)
                return f"({inner})"
            return f"_:{node.label}"
        if isinstance(node, Literal):
            base = f'"{escape_string_value(node.value, self.ascii_only)}"'
            if node.language is not None:
                return f"{base}@{node.language}"
            if node.datatype.value == XSD_STRING_IRI:
                return base
            return f"{base}^^{self.iri(node.datatype.value)}"
        raise TypeError(f"unsupported node type: {type(node)!r}")

    def graph_label(self, graph_label: GraphName) -> str:
        """Format a graph label for TriG output."""
        if isinstance(graph_label, Iri):
            return self.iri(graph_label.value)
        if isinstance(graph_label, BlankNode):
            return f"_:{graph_label.label}"
        raise TypeError(f"invalid graph label type for TriG: {type(graph_label)!r}")

    def statement_blocks(self, triples: list[Triple]) -> list[str]:
        """Render grouped Turtle subject blocks without directives/prefix headers."""
        grouped: dict[Subject, dict[Iri, list[Node]]] = {}
        for subject, predicate, obj in triples:
            grouped.setdefault(subject, {}).setdefault(predicate, []).append(obj)

        blocks: list[str] = []
        for subject, predicates in grouped.items():
            predicate_parts = [
                f"{self.predicate(predicate)} {', '.join(self.node(obj) for obj in objects)}"
                for predicate, objects in predicates.items()
            ]
            block = f"{self.node(subject)} {predicate_parts[0]}"
            for part in predicate_parts[1:]:
                block += f"\n    ; {part}"
            block += " ."
            blocks.append(block)
        return blocks


def indent_multiline_block(text: str, prefix: str) -> str:
    """Indent every line of a multi-line text block."""
    return "\n".join(prefix + line for line in text.splitlines())


def default_graph_triples(items: Iterable[Triple | Quad]) -> Iterator[Triple]:
    """Yield triples, accepting quads only when they belong to the default graph."""
    for item in items:
        if isinstance(item, Quad):
            if item.graph is not None:
                raise StructuralError(
                    "cannot serialize named graphs to Turtle; dataset contains non-default graph statements"
                )
            item = item.to_triple()
        yield item


def as_quads(items: Iterable[Triple | Quad]) -> Iterator[Quad]:
    for item in items:
        yield item.to_quad() if isinstance(item, Triple) else item


def _plan_lists(triples: list[Triple], mode: str) -> tuple[list[Triple], ListHeads]:
    if mode == "off":
        return triples, {}
    list_heads, removed_indices = collect_list_compaction(triples)
    visible = [triple for idx, triple in enumerate(triples) if idx not in removed_indices]
    return visible, list_heads


def _header_lines(opts: TurtleSerializationOptions, prefixes: dict[str, str]) -> list[str]:
    lines: list[str] = []
    if opts.output_base is not None:
        lines.append(f"@base {encode_iri_ref(opts.output_base, opts.ascii_only)} .")
    for prefix, namespace in prefixes.items():
        lines.append(f"@prefix {prefix}: {encode_iri_ref(namespace, opts.ascii_only)} .")
    return lines


def iter_turtle_lines(
    items: Iterable[Triple | Quad],
    options: TurtleSerializationOptions | None = None,
) -> Iterator[str]:
    """Yield Turtle output in line mode, one statement per line, as items arrive."""
    opts = options or TurtleSerializationOptions()
    if opts.output_base is not None:
        yield f"@base {encode_iri_ref(opts.output_base, opts.ascii_only)} .\n"
    for triple in default_graph_triples(items):
        yield format_statement_nt(triple, opts.ascii_only) + "\n"


def iter_trig_lines(
    items: Iterable[Triple | Quad],
    options: TurtleSerializationOptions | None = None,
) -> Iterator[str]:
    """Yield TriG output in line mode; consecutive quads of one named graph share a block."""
    opts = options or TurtleSerializationOptions()
    if opts.output_base is not None:
        yield f"@base {encode_iri_ref(opts.output_base, opts.ascii_only)} .\n"
    open_graph: GraphName | None = None
    for quad in as_quads(items):
        if quad.graph != open_graph:
            if open_graph is not None:
                yield "}\n"
            if quad.graph is not None:
                yield f"{format_graph_label_nt(quad.graph, opts.ascii_only)} {{\n"
            open_graph = quad.graph
        indent = "    " if open_graph is not None else ""
        yield f"{indent}{format_statement_nt(quad, opts.ascii_only)}\n"
    if open_graph is not None:
        yield "}\n"


def serialize_turtle_with_meta(
    items: Iterable[Triple | Quad],
    options: TurtleSerializationOptions | None = None,
) -> tuple[str, dict[str, int]]:
    """Serialize triples to Turtle and return serialization metadata counters."""
    opts = options or TurtleSerializationOptions()
    if not opts.pretty:
        lines = list(iter_turtle_lines(items, opts))
        count = len(lines) - (opts.output_base is not None)
        meta = {"prefixes_emitted": 0, "lists_compacted": 0, "triples_serialized": count}
        return "".join(lines), meta

    triples = list(dict.fromkeys(default_graph_triples(items)))
    visible_triples, list_heads = _plan_lists(triples, opts.lists)
    auto_prefixes = choose_turtle_prefixes(
        visible_triples, list_heads, opts.prefix_threshold, opts.ascii_only
    )
    prefixes = merge_prefix_maps(opts.prefixes, auto_prefixes, opts.auto_prefixes)
    meta = {
        "prefixes_emitted": len(prefixes),
        "lists_compacted": len(list_heads),
        "triples_serialized": len(visible_triples),
    }

    lines = _header_lines(opts, prefixes)
    blocks = TurtleFormatter(prefixes, list_heads, opts.ascii_only).statement_blocks(visible_triples)
    if lines and blocks:
        lines.append("")
    lines.extend(blocks)
    if not lines:
        return "", meta
    return "\n".join(lines) + "\n", meta


def serialize_turtle(
    items: Iterable[Triple | Quad],
    options: TurtleSerializationOptions | None = None,
) -> str:
    """Serialize triples to Turtle text using the selected options."""
    text, _ = serialize_turtle_with_meta(items, options=options)
    return text


def serialize_trig_with_meta(
    items: Iterable[Triple | Quad],
    options: TurtleSerializationOptions | None = None,
) -> tuple[str, dict[str, int]]:
    """Serialize quads to TriG and return serialization metadata counters."""
    opts = options or TurtleSerializationOptions()
    if not opts.pretty:
        quads = list(as_quads(items))
        meta = {
            "prefixes_emitted": 0,
            "lists_compacted": 0,
            "triples_serialized": len(quads),
            "graphs_serialized": len({quad.graph for quad in quads}),
        }
        return "".join(iter_trig_lines(quads, opts)), meta

    grouped: dict[GraphName | None, list[Triple]] = {}
    for quad in dict.fromkeys(as_quads(items)):
        grouped.setdefault(quad.graph, []).append(quad.to_triple())
    logger.debug("grouped statements into %d graphs", len(grouped))

    plans: dict[GraphName | None, tuple[list[Triple], ListHeads]] = {}
    combined_visible: list[Triple] = []
    combined_list_heads: ListHeads = {}
    for graph_label, triples in grouped.items():
        visible_triples, list_heads = _plan_lists(triples, opts.lists)
        plans[graph_label] = (visible_triples, list_heads)
        combined_visible.extend(visible_triples)
        combined_list_heads.update(list_heads)

    auto_prefixes = choose_turtle_prefixes(
        combined_visible, combined_list_heads, opts.prefix_threshold, opts.ascii_only
    )
    prefixes = merge_prefix_maps(opts.prefixes, auto_prefixes, opts.auto_prefixes)
    meta = {
        "prefixes_emitted": len(prefixes),
        "lists_compacted": len(combined_list_heads),
        "triples_serialized": len(combined_visible),
        "graphs_serialized": len(grouped),
    }

    content_blocks: list[str] = []
    default_plan = plans.get(None)
    if default_plan is not None:
        visible_triples, list_heads = default_plan
        content_blocks.extend(
            TurtleFormatter(prefixes, list_heads, opts.ascii_only).statement_blocks(visible_triples)
        )

    for graph_label, (visible_triples, list_heads) in plans.items():
        if graph_label is None or not visible_triples:
            continue
        formatter = TurtleFormatter(prefixes, list_heads, opts.ascii_only)
        body = indent_multiline_block("\n".join(formatter.statement_blocks(visible_triples)), "    ")
        content_blocks.append(f"{formatter.graph_label(graph_label)} {{\n{body}\n}}")

    lines = _header_lines(opts, prefixes)
    if lines and content_blocks:
        lines.append("")
    lines.extend(content_blocks)
    if not lines:
        return "", meta
    return "\n".join(lines) + "\n", meta


def serialize_trig(
    items: Iterable[Triple | Quad],
    options: TurtleSerializationOptions | None = None,
) -> str:
    """Serialize quads to TriG text using the selected options."""
    text, _ = serialize_trig_with_meta(items, options=options)
    return text


def write_turtle(
    items: Iterable[Triple | Quad],
    out: TextIO,
    options: TurtleSerializationOptions | None = None,
) -> None:
    """Write Turtle to `out`; line mode streams, pretty mode writes once at the end."""
    opts = options or TurtleSerializationOptions()
    if opts.pretty:
        out.write(serialize_turtle(items, opts))
        return
    for line in iter_turtle_lines(items, opts):
        out.write(line)


def write_trig(
    items: Iterable[Triple | Quad],
    out: TextIO,
    options: TurtleSerializationOptions | None = None,
) -> None:
    """Write TriG to `out`; line mode streams, pretty mode writes once at the end."""
    opts = options or TurtleSerializationOptions()
    if opts.pretty:
        out.write(serialize_trig(items, opts))
        return
    for line in iter_trig_lines(items, opts):
        out.write(line)
