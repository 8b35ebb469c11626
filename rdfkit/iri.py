"""IRI validation, encoding and RFC 3986 reference resolution."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from .errors import ResolutionError

IRI_FORBIDDEN = '<>"{}|^`\\'

_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*:")


def has_scheme(value: str) -> bool:
    """Return whether an IRI reference starts with a scheme, i.e. is absolute."""
    return _SCHEME.match(value) is not None


def validate_iri(value: str, require_absolute: bool, allow_empty: bool) -> None:
    """Validate IRI."""
    if not value and not allow_empty:
        raise ValueError("IRI must not be empty")
    if any(ord(ch) <= 0x20 for ch in value):
        raise ValueError("IRI contains whitespace/control")
    if require_absolute and not has_scheme(value):
        raise ValueError("IRI must be absolute")


def encode_iri_ref(value: str, ascii_only: bool = False) -> str:
    """Encode IRI reference."""
    out: list[str] = ["<"]
    for ch in value:
        cp = ord(ch)
        if ch in IRI_FORBIDDEN or cp <= 0x20 or (ascii_only and cp > 0x7E):
            if cp <= 0xFFFF:
                out.append(f"\\u{cp:04X}")
            else:
                out.append(f"\\U{cp:08X}")
        else:
            out.append(ch)
    out.append(">")
    return "".join(out)


def _remove_dot_segments(path: str) -> str:
    """Normalize a path by removing `.` and `..` dot segments."""
    input_buffer = path
    output_buffer = ""

    def remove_last_segment(buf: str) -> str:
        """Drop the final path segment while preserving leading slash semantics."""
        idx = buf.rfind("/")
        if idx < 0:
            return ""
        return buf[:idx]

    while input_buffer:
        if input_buffer.startswith("../"):
            input_buffer = input_buffer[3:]
            continue
        if input_buffer.startswith("./"):
            input_buffer = input_buffer[2:]
            continue
        if input_buffer.startswith("/./"):
            input_buffer = "/" + input_buffer[3:]
            continue
        if input_buffer == "/.":
            input_buffer = "/"
            continue
        if input_buffer.startswith("/../"):
            input_buffer = "/" + input_buffer[4:]
            output_buffer = remove_last_segment(output_buffer)
            continue
        if input_buffer == "/..":
            input_buffer = "/"
            output_buffer = remove_last_segment(output_buffer)
            continue
        if input_buffer in (".", ".."):
            input_buffer = ""
            continue

        if input_buffer.startswith("/"):
            next_slash = input_buffer.find("/", 1)
        else:
            next_slash = input_buffer.find("/")
        if next_slash < 0:
            segment = input_buffer
            input_buffer = ""
        else:
            segment = input_buffer[:next_slash]
            input_buffer = input_buffer[next_slash:]
        output_buffer += segment

    return output_buffer


def _merge_reference_path(base_path: str, base_has_authority: bool, ref_path: str) -> str:
    """Merge an RFC 3986 reference path against the base path."""
    if base_has_authority and base_path == "":
        return "/" + ref_path
    slash = base_path.rfind("/")
    if slash < 0:
        return ref_path
    return base_path[: slash + 1] + ref_path


def resolve_iri_reference(base_iri: str, ref_iri: str) -> str:
    """Resolve an IRI reference against a base per RFC 3986 section 5.2.

    An empty reference yields the base with its fragment removed, and a
    fragment-only reference replaces the fragment of the base.
    """
    try:
        ref_parts = urlsplit(ref_iri)
        base_parts = urlsplit(base_iri)
    except ValueError as exc:
        raise ResolutionError("<iri>", None, None, f"cannot resolve <{ref_iri}>: {exc}") from exc

    ref_no_fragment = ref_iri.partition("#")[0]
    base_no_fragment = base_iri.partition("#")[0]
    ref_has_query = "?" in ref_no_fragment
    fragment = ref_parts.fragment if "#" in ref_iri else None

    if has_scheme(ref_iri):
        scheme = ref_parts.scheme
        authority = ref_parts.netloc if _has_authority(ref_no_fragment) else None
        path = _remove_dot_segments(ref_parts.path)
        query = ref_parts.query if ref_has_query else None
    elif ref_iri.startswith("//"):
        scheme = base_parts.scheme
        authority = ref_parts.netloc
        path = _remove_dot_segments(ref_parts.path)
        query = ref_parts.query if ref_has_query else None
    else:
        scheme = base_parts.scheme
        authority = base_parts.netloc if _has_authority(base_no_fragment) else None
        if ref_parts.path == "":
            path = base_parts.path
            if ref_has_query:
                query = ref_parts.query
            else:
                query = base_parts.query if "?" in base_no_fragment else None
        else:
            if ref_parts.path.startswith("/"):
                path = _remove_dot_segments(ref_parts.path)
            else:
                merged = _merge_reference_path(
                    base_parts.path,
                    base_has_authority=authority is not None,
                    ref_path=ref_parts.path,
                )
                path = _remove_dot_segments(merged)
            query = ref_parts.query if ref_has_query else None

    resolved = f"{scheme}:"
    if authority is not None:
        resolved += f"//{authority}"
    resolved += path
    if query is not None:
        resolved += f"?{query}"
    if fragment is not None:
        resolved += f"#{fragment}"
    return resolved


def _has_authority(iri: str) -> bool:
    """Return whether an absolute IRI carries a ``//`` authority marker."""
    _, sep, rest = iri.partition(":")
    return bool(sep) and rest.startswith("//")


class IriResolver:
    """Resolve IRI references against a fixed absolute base IRI."""

    def __init__(self, base_iri: str):
        if not has_scheme(base_iri):
            raise ResolutionError("<iri>", None, None, f"base IRI <{base_iri}> is not absolute")
        try:
            validate_iri(base_iri, require_absolute=True, allow_empty=False)
        except ValueError as exc:
            raise ResolutionError("<iri>", None, None, f"invalid base IRI <{base_iri}>: {exc}") from exc
        self.base_iri = base_iri

    def resolve(self, reference: str) -> str:
        """Return the absolute IRI denoted by `reference`."""
        try:
            validate_iri(reference, require_absolute=False, allow_empty=True)
        except ValueError as exc:
            raise ResolutionError("<iri>", None, None, f"invalid IRI reference <{reference}>: {exc}") from exc
        if has_scheme(reference):
            return resolve_iri_reference(reference, reference)
        return resolve_iri_reference(self.base_iri, reference)

    def rebase(self, reference: str) -> IriResolver:
        """Return a resolver whose base is `reference` resolved against this one."""
        return IriResolver(self.resolve(reference))
