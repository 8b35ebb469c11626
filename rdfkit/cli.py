"""Command line converter between RDF serializations."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TextIO

from .bnodes import BlankNodeScope
from .errors import RdfError
from .io import FORMAT_ALIASES, guess_format, normalize_format, parse, serialize
from .iri import validate_iri
from .jsonld import JsonLdSerializationOptions
from .serializer import TurtleSerializationOptions, is_valid_prefix_label
from .terms import BlankNode, Iri, Literal
from .triples import Quad, Triple

logger = logging.getLogger(__name__)


def parse_prefix_binding(raw: str) -> tuple[str, str]:
    """Parse a `PREFIX=IRI` command line binding."""
    if "=" not in raw:
        raise ValueError(f"invalid --prefix value '{raw}', expected PREFIX=IRI")
    prefix, iri = raw.split("=", 1)
    if not is_valid_prefix_label(prefix):
        raise ValueError(f"invalid prefix label '{prefix}' in --prefix")
    try:
        validate_iri(iri, require_absolute=False, allow_empty=True)
    except ValueError as exc:
        raise ValueError(f"invalid IRI for --prefix '{raw}': {exc}") from exc
    return prefix, iri


def normalize_manual_prefixes(raw_values: list[str]) -> tuple[tuple[str, str], ...]:
    """Deduplicate manual prefix bindings, rejecting conflicting ones."""
    ordered: list[tuple[str, str]] = []
    by_prefix: dict[str, str] = {}
    for raw in raw_values:
        prefix, iri = parse_prefix_binding(raw)
        existing = by_prefix.get(prefix)
        if existing is not None and existing != iri:
            raise ValueError(f"conflicting --prefix for '{prefix}': '{existing}' vs '{iri}'")
        if existing is None:
            by_prefix[prefix] = iri
            ordered.append((prefix, iri))
    return tuple(ordered)


def guess_base_iri(path: str, explicit_base: str | None) -> str | None:
    """Derive the parsing base IRI from CLI arguments and input path."""
    if explicit_base is not None:
        return explicit_base
    if path == "-":
        return None
    return Path(path).resolve().as_uri()


def read_input(path: str) -> bytes:
    """Read raw input from a file or stdin."""
    if path == "-":
        return sys.stdin.buffer.read()
    return Path(path).read_bytes()


@contextmanager
def open_output(path: str) -> Iterator[TextIO]:
    """Open the output file, or stdout for '-'."""
    if path == "-":
        yield sys.stdout
        sys.stdout.flush()
        return
    with open(path, "w", encoding="utf-8", newline="\n") as fh:
        yield fh


class StatsCollector:
    """Accumulate dataset-level counts while items stream by."""

    def __init__(self):
        self.statements = 0
        self.default_graph_triples = 0
        self.named_graph_triples = 0
        self.subjects: set = set()
        self.predicates: set = set()
        self.objects: set = set()
        self.graphs: set = set()
        self.iris: set[str] = set()
        self.blank_nodes: set[str] = set()
        self.literals: set[Literal] = set()

    def observe(self, item: Triple | Quad) -> Triple | Quad:
        self.statements += 1
        self.subjects.add(item.subject)
        self.predicates.add(item.predicate)
        self.objects.add(item.object)
        graph = item.graph if isinstance(item, Quad) else None
        if graph is None:
            self.default_graph_triples += 1
        else:
            self.named_graph_triples += 1
            self.graphs.add(graph)
        for node in (item.subject, item.predicate, item.object, graph):
            if isinstance(node, Iri):
                self.iris.add(node.value)
            elif isinstance(node, BlankNode):
                self.blank_nodes.add(node.label)
            elif isinstance(node, Literal):
                self.literals.add(node)
                self.iris.add(node.datatype.value)
        return item

    def as_dict(self) -> dict[str, int]:
        return {
            "statements": self.statements,
            "subjects_unique": len(self.subjects),
            "predicates_unique": len(self.predicates),
            "objects_unique": len(self.objects),
            "named_graphs_unique": len(self.graphs),
            "default_graph_triples": self.default_graph_triples,
            "named_graph_triples": self.named_graph_triples,
            "iris_unique": len(self.iris),
            "blank_nodes_unique": len(self.blank_nodes),
            "literals_unique": len(self.literals),
        }


def emit_stats(stats: dict[str, int]) -> None:
    """Print collected statistics to stderr."""
    print("stats:", file=sys.stderr)
    for key, value in stats.items():
        print(f"{key}: {value}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="rdfkit",
        description=(
            "Convert RDF between N-Triples (.nt), N-Quads (.nq), Turtle (.ttl), "
            "TriG (.trig), RDF/XML (.rdf, read only) and JSON-LD (.jsonld, write only)."
        ),
        epilog=(
            "Notes: --pretty/--lists/--auto-prefixes/--prefix/--output-base apply only "
            "when the target format is Turtle or TriG; --context only to JSON-LD. "
            "--validate-only parses input only and does not write output."
        ),
    )
    parser.add_argument("input", help="Input file path, or '-' for stdin.")
    parser.add_argument(
        "output",
        nargs="?",
        help="Output file path, or '-' for stdout. Optional with --validate-only.",
    )
    parser.add_argument(
        "--from",
        dest="source_format",
        choices=sorted(FORMAT_ALIASES),
        help="Input format. If omitted, inferred from input extension.",
    )
    parser.add_argument(
        "--to",
        dest="target_format",
        choices=sorted(FORMAT_ALIASES),
        help="Output format. If omitted, inferred from output extension.",
    )
    parser.add_argument(
        "--base",
        default=None,
        help="Base IRI for parsing relative IRIs (default: input file URI).",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Group statements by subject, compact lists and declare prefixes (Turtle/TriG).",
    )
    parser.add_argument(
        "--lists",
        choices=["auto", "off"],
        default="auto",
        help="List compaction mode for pretty Turtle/TriG output.",
    )
    parser.add_argument(
        "--auto-prefixes",
        choices=["on", "off"],
        default="on",
        help="Enable automatic @prefix generation in pretty Turtle/TriG output.",
    )
    parser.add_argument(
        "--prefix",
        action="append",
        default=[],
        help="Manual prefix binding PREFIX=IRI (repeatable, target Turtle/TriG only).",
    )
    parser.add_argument(
        "--output-base",
        default=None,
        help="Emit @base directive in Turtle/TriG output.",
    )
    parser.add_argument(
        "--ascii",
        action="store_true",
        help="Escape every non-ASCII character in the output.",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="JSON-LD context file used to compact the output (target JSON-LD only).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Parse and validate input only; do not write output.",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print graph and serialization statistics to stderr.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug messages to stderr.",
    )
    return parser


def resolve_formats(args: argparse.Namespace) -> tuple[str, str | None]:
    """Resolve and validate source/target formats from CLI arguments."""
    source = normalize_format(args.source_format) if args.source_format else None
    if source is None:
        source = guess_format(args.input)
    if source is None:
        raise ValueError("could not infer input format; provide --from")
    if source == "jsonld":
        raise ValueError("JSON-LD input is not supported")

    target = normalize_format(args.target_format) if args.target_format else None
    if target is None and args.output:
        target = guess_format(args.output)

    if args.validate_only:
        return source, target

    if args.output is None:
        raise ValueError("output path is required unless --validate-only")
    if target is None:
        raise ValueError("could not infer output format; provide --to or output extension")
    if target == "rdfxml":
        raise ValueError("RDF/XML output is not supported")
    return source, target


def build_options(args: argparse.Namespace, target: str):
    """Build the serializer options for `target` from CLI arguments."""
    manual_prefixes = normalize_manual_prefixes(args.prefix)
    if target not in {"turtle", "trig"}:
        uses_turtle_options = (
            args.pretty
            or args.lists != "auto"
            or args.auto_prefixes != "on"
            or bool(manual_prefixes)
            or args.output_base is not None
        )
        if uses_turtle_options:
            raise ValueError(
                "--pretty/--lists/--auto-prefixes/--prefix/--output-base require Turtle or TriG output"
            )
    if target != "jsonld" and args.context is not None:
        raise ValueError("--context requires JSON-LD output")

    if target == "jsonld":
        context = None
        if args.context is not None:
            with open(args.context, encoding="utf-8") as fh:
                context = json.load(fh)
            if not isinstance(context, dict):
                raise ValueError(f"JSON-LD context file {args.context} must hold an object")
        return JsonLdSerializationOptions(context=context, ascii_only=args.ascii)
    if target in {"turtle", "trig"}:
        if args.output_base is not None:
            validate_iri(args.output_base, require_absolute=True, allow_empty=False)
        return TurtleSerializationOptions(
            pretty=args.pretty,
            prefixes=manual_prefixes,
            ascii_only=args.ascii,
            lists=args.lists,
            auto_prefixes=args.auto_prefixes == "on",
            output_base=args.output_base,
        )
    return TurtleSerializationOptions(ascii_only=args.ascii)


def main(argv: list[str] | None = None) -> int:
    """Run the `rdfkit` command-line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        source_format, target = resolve_formats(args)
        options = build_options(args, target) if target is not None and not args.validate_only else None
        source_name = args.input if args.input != "-" else "<stdin>"
        base_iri = guess_base_iri(args.input, args.base)
        scope = BlankNodeScope(preserve_labels=True)

        items = parse(
            read_input(args.input),
            base_iri=base_iri,
            format=source_format,
            scope=scope,
            source=source_name,
        )
        stats = StatsCollector()
        items = items.map_items(stats.observe)

        if args.validate_only:
            items.for_each(lambda _item: None)
        else:
            with open_output(args.output) as out:
                serialize(items, format=target, options=options, out=out)
        logger.debug("processed %d statements from %s", stats.statements, source_name)

        if args.stats:
            emit_stats(stats.as_dict())
        return 0
    except (RdfError, ValueError, OSError) as exc:
        parser.exit(status=1, message=f"Error: {exc}\n")
