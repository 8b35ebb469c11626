"""Per-document blank node scopes."""

from __future__ import annotations

import uuid

from .scanner import is_blank_node_label
from .terms import BlankNode


class BlankNodeScope:
    """Map the blank node labels of one document to stable identifiers.

    The same label always maps to the same node within a scope. Every scope
    draws a random token that is embedded in the identifiers it produces, so
    equal labels from two documents parsed with two scopes never alias.

    With ``preserve_labels=True`` document labels that can be written as
    ``_:label`` are kept verbatim and anonymous nodes get ``genid<n>`` labels
    avoiding the labels seen so far; keeping nodes of different documents
    apart is then up to the caller.
    """

    def __init__(self, preserve_labels: bool = False):
        self.preserve_labels = preserve_labels
        self.token = uuid.uuid4().hex[:12]
        self._by_label: dict[str, BlankNode] = {}
        self._reserved: set[str] = set()
        self._generated = 0

    def fresh_or_lookup(self, label: str) -> BlankNode:
        """Return the node for `label`, creating it on first use."""
        node = self._by_label.get(label)
        if node is None:
            if self.preserve_labels and label not in self._reserved and is_blank_node_label(label):
                node = BlankNode(label)
            else:
                node = BlankNode(f"{label}_{self.token}")
            self._by_label[label] = node
            self._reserved.add(node.label)
        return node

    def fresh(self) -> BlankNode:
        """Create a fresh blank node that no label of this scope maps to."""
        while True:
            if self.preserve_labels:
                label = f"genid{self._generated}"
            else:
                label = f"anon{self._generated}x{self.token}"
            self._generated += 1
            if label not in self._reserved:
                self._reserved.add(label)
                return BlankNode(label)

    def labels(self) -> dict[str, BlankNode]:
        """Return a copy of the label to node mapping seen so far."""
        return dict(self._by_label)

    def __contains__(self, label: str) -> bool:
        return label in self._by_label

    def __len__(self) -> int:
        return len(self._by_label)
