"""
Auto Value Catalog — records volatile field values out of the control tree.

Some control fields are regenerated by the authoring tool on every save
(unique ids, publish ordering, ...). Left in place they would make every
save look like a change to every control. The catalog moves them into one
side file, AutoValues.json, keyed by the control path they came from.

Scoping:
    Entering a control pushes its name onto a ScopePath; every value
    extracted while that scope is active is tagged with the current path.
    The scope is an explicit object owned by the catalog, never global.

IMPORTANT:
    - Values are nulled in place, not deleted, so the key position survives
    - Every present field yields exactly one entry, in traversal order
    - Entries are never overwritten; duplicate paths are kept in order
"""

from __future__ import annotations

from collections import defaultdict, deque
from contextlib import contextmanager
from typing import Any, Deque, Dict, Iterator, List, Optional, Sequence, Tuple

from canvaspkg.errors import CompositionError
from canvaspkg.model import AutoValueEntry, CHILDREN, NAME, PROPERTY, RULES
from canvaspkg.serialization import (
    JsonFormat,
    decode,
    encode,
    entry_from_dict,
    entry_to_dict,
)


DEFAULT_CONTROL_FIELDS: Tuple[str, ...] = ("ControlUniqueId", "PublishOrderIndex")
DEFAULT_RULE_FIELDS: Tuple[str, ...] = ("NameMap",)


def is_rule(node: Dict[str, Any]) -> bool:
    """Rules carry a Property and no Name; controls always carry a Name."""
    return PROPERTY in node and NAME not in node


class ScopePath:
    """Stack of control names from the tree root to the current control."""

    def __init__(self) -> None:
        self._names: List[str] = []

    def push(self, name: str) -> None:
        self._names.append(name)

    def pop(self) -> str:
        if not self._names:
            raise RuntimeError("pop() without a matching push()")
        return self._names.pop()

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._names)

    def __len__(self) -> int:
        return len(self._names)

    @contextmanager
    def enter(self, name: str) -> Iterator["ScopePath"]:
        self.push(name)
        try:
            yield self
        finally:
            self.pop()


class _FieldTables:
    """Shared field lookup for the recorder and the replayer."""

    def __init__(self, control_fields: Sequence[str], rule_fields: Sequence[str]):
        self.control_fields = tuple(control_fields)
        self.rule_fields = tuple(rule_fields)
        self.path = ScopePath()

    def _fields_of(self, node: Dict[str, Any]) -> List[Tuple[str, str]]:
        """(field in node, field identifier in the catalog) for each known field present."""
        if is_rule(node):
            prefix = f"{node[PROPERTY]}."
            fields = self.rule_fields
        else:
            prefix = ""
            fields = self.control_fields
        return [(f, prefix + f) for f in fields if f in node]

    def push(self, name: str) -> None:
        self.path.push(name)

    def pop(self) -> str:
        return self.path.pop()

    def scope(self, name: str):
        return self.path.enter(name)


class AutoValueCatalog(_FieldTables):
    """
    Recorder side of the catalog, used while decomposing.

    Besides the values, the catalog remembers for every top-level control
    which file it came from and how that file was laid out, so that the
    composer can write the file back byte-for-byte.
    """

    def __init__(self, control_fields: Sequence[str] = DEFAULT_CONTROL_FIELDS,
                 rule_fields: Sequence[str] = DEFAULT_RULE_FIELDS):
        super().__init__(control_fields, rule_fields)
        self.entries: List[AutoValueEntry] = []
        self.documents: List[Dict[str, str]] = []

    def extract(self, node: Dict[str, Any]) -> Dict[str, Any]:
        """
        Capture the volatile fields of a rule or control.

        Args:
            node: Rule or control JSON object (left untouched)

        Returns:
            A shallow copy with every captured field set to None
        """
        residual = dict(node)
        for name, identifier in self._fields_of(node):
            self.entries.append(AutoValueEntry(path=list(self.path.names), field=identifier, value=residual[name]))
            residual[name] = None
        return residual

    def extract_component_children(self, children: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Capture volatile fields from a component definition's child list.

        That list is carried inside template metadata, outside the normal
        Children recursion, so it is scrubbed here rather than written out.
        Order per child: rules, nested children, the child itself.
        """
        scrubbed = []
        for child in children:
            with self.scope(child.get(NAME, "")):
                residual = dict(child)
                if isinstance(child.get(RULES), list):
                    residual[RULES] = [self.extract(rule) for rule in child[RULES]]
                if isinstance(child.get(CHILDREN), list):
                    residual[CHILDREN] = self.extract_component_children(child[CHILDREN])
                residual = self.extract(residual)
            scrubbed.append(residual)
        return scrubbed

    def record_document(self, name: str, file_name: str, fmt: JsonFormat) -> None:
        self.documents.append({"Name": name, "File": file_name, "Format": fmt.value})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Fields": {"Control": list(self.control_fields), "Rule": list(self.rule_fields)},
            "Documents": list(self.documents),
            "AutoValues": [entry_to_dict(e) for e in self.entries],
        }

    def serialize(self) -> str:
        return encode(self.to_dict(), JsonFormat.INDENTED)

    @classmethod
    def parse(cls, text: str) -> "AutoValueCatalog":
        data = decode(text)
        fields = data.get("Fields") or {}
        catalog = cls(
            control_fields=fields.get("Control", DEFAULT_CONTROL_FIELDS),
            rule_fields=fields.get("Rule", DEFAULT_RULE_FIELDS),
        )
        catalog.documents = list(data.get("Documents") or [])
        catalog.entries = [entry_from_dict(d) for d in data.get("AutoValues") or []]
        return catalog

    def replay(self) -> "AutoValueReplay":
        return AutoValueReplay(self.entries, self.control_fields, self.rule_fields)


class AutoValueReplay(_FieldTables):
    """
    Replayer side of the catalog, used while composing.

    Mirrors the recorder: the composer enters the same scopes and calls
    restore() at the same points, and each (path, field) queue is consumed
    in the order it was recorded.
    """

    def __init__(self, entries: List[AutoValueEntry],
                 control_fields: Sequence[str] = DEFAULT_CONTROL_FIELDS,
                 rule_fields: Sequence[str] = DEFAULT_RULE_FIELDS):
        super().__init__(control_fields, rule_fields)
        self._values: Dict[Tuple[Tuple[str, ...], str], Deque[Any]] = defaultdict(deque)
        for entry in entries:
            self._values[(tuple(entry.path), entry.field)].append(entry.value)

    def restore(self, node: Dict[str, Any]) -> Dict[str, Any]:
        restored = dict(node)
        for name, identifier in self._fields_of(node):
            queue = self._values.get((self.path.names, identifier))
            if not queue:
                raise CompositionError(
                    f"No auto value recorded for {'/'.join(self.path.names)} field {identifier}"
                )
            restored[name] = queue.popleft()
        return restored

    def restore_component_children(self, children: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        restored = []
        for child in children:
            with self.scope(child.get(NAME, "")):
                node = dict(child)
                if isinstance(child.get(RULES), list):
                    node[RULES] = [self.restore(rule) for rule in child[RULES]]
                if isinstance(child.get(CHILDREN), list):
                    node[CHILDREN] = self.restore_component_children(child[CHILDREN])
                node = self.restore(node)
            restored.append(node)
        return restored

    def remaining(self) -> int:
        """Number of recorded values not yet restored."""
        return sum(len(q) for q in self._values.values())


__all__ = [
    "DEFAULT_CONTROL_FIELDS",
    "DEFAULT_RULE_FIELDS",
    "ScopePath",
    "AutoValueCatalog",
    "AutoValueReplay",
    "is_rule",
]
