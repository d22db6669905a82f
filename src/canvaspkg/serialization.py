"""
Serialization helpers for control files, catalogs and metadata files.

Provides format-preserving JSON encode/decode: a decoded control keeps its
key order, and encoding reproduces the layout the source file used
(compact, or two-space indented with LF or CRLF line breaks).
This module intentionally keeps the encoded structure stable and explicit.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from canvaspkg.model import AutoValueEntry


UNFORMATTED_PREFIX = "//// Unformatted: "
# Only CR, LF and CRLF end a line; other Unicode separators may sit raw inside strings.
_LINE_BREAK = re.compile(r"\r\n|\n|\r")


class JsonFormat(Enum):
    """Layouts a control file may be written in."""
    COMPACT = "compact"
    INDENTED = "indented"            # two spaces, LF
    INDENTED_CRLF = "indented-crlf"  # two spaces, CRLF

    @property
    def newline(self) -> str:
        return "\r\n" if self is JsonFormat.INDENTED_CRLF else "\n"


def detect_format(text: str) -> JsonFormat:
    """
    Detect the layout of a JSON document from its first characters.

    An indented document breaks the line right after its opening bracket,
    so the second (and for CRLF the third) character is the line break.
    """
    if len(text) > 2 and text[1] == "\r" and text[2] == "\n":
        return JsonFormat.INDENTED_CRLF
    if len(text) > 1 and text[1] == "\n":
        return JsonFormat.INDENTED
    return JsonFormat.COMPACT


def decode(text: str) -> Any:
    return json.loads(text)


def encode(value: Any, fmt: JsonFormat = JsonFormat.INDENTED) -> str:
    if fmt is JsonFormat.COMPACT:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    text = json.dumps(value, ensure_ascii=False, indent=2)
    # Line breaks inside strings are escaped, so every raw "\n" is layout.
    if fmt is JsonFormat.INDENTED_CRLF:
        text = text.replace("\n", "\r\n")
    return text


def read_text(path: Path) -> str:
    """Read a file verbatim (a UTF-8 BOM is dropped, line breaks are kept)."""
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        return f.read()


def write_text(path: Path, text: str) -> None:
    """Write a file verbatim, without line-break translation."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


# =========================================================================
# PRETTY TWINS
# =========================================================================

def format_json_text(text: str) -> Optional[str]:
    """
    Build the reviewable form of a single-line JSON document.

    The original line is kept first, behind UNFORMATTED_PREFIX, as the
    record of truth; the indented rendering follows it.

    Returns:
        The twin text, or None if the document spans more than one line
    """
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    if len(lines) != 1:
        return None
    return UNFORMATTED_PREFIX + lines[0] + "\n" + encode(decode(lines[0]), JsonFormat.INDENTED)


def format_json_file(path: Path) -> bool:
    """Rewrite a single-line .json file as its pretty twin. Returns True if rewritten."""
    path = Path(path)
    if path.suffix.lower() != ".json":
        return False
    twin = format_json_text(read_text(path))
    if twin is None:
        return False
    write_text(path, twin)
    return True


# =========================================================================
# SERIALIZER QUIRKS
# =========================================================================

@dataclass(frozen=True)
class SerializationQuirk:
    """
    A known difference between the upstream serializer and ours.

    Whenever a line starts (after indentation) with `trigger`, the upstream
    serializer always writes `companion` on the following line at the same
    indentation. The companion is only inserted where it is missing.
    """

    trigger: str
    companion: str

    def apply(self, text: str) -> str:
        if self.trigger not in text:
            return text
        lines = text.split("\n")
        out = []
        for i, line in enumerate(lines):
            out.append(line)
            stripped = line.lstrip()
            if not stripped.startswith(self.trigger):
                continue
            following = lines[i + 1].strip() if i + 1 < len(lines) else ""
            if following == self.companion:
                continue
            indent = line[:len(line) - len(stripped)]
            out.append(indent + self.companion + ("\r" if line.endswith("\r") else ""))
        return "\n".join(out)


QUIRKS = (
    # PCF controls: TemplateDisplayName is always written, null or not.
    SerializationQuirk(
        trigger='"DynamicControlDefinitionJson": ',
        companion='"TemplateDisplayName": null,',
    ),
)


def apply_quirks(text: str, quirks: Iterable[SerializationQuirk] = QUIRKS) -> str:
    for quirk in quirks:
        text = quirk.apply(text)
    return text


# =========================================================================
# CATALOG ENTRIES
# =========================================================================

def entry_to_dict(entry: AutoValueEntry) -> Dict[str, Any]:
    return {"Path": list(entry.path), "Field": entry.field, "Value": entry.value}


def entry_from_dict(d: Dict[str, Any]) -> AutoValueEntry:
    return AutoValueEntry(path=list(d["Path"]), field=d["Field"], value=d.get("Value"))


__all__ = [
    "UNFORMATTED_PREFIX",
    "JsonFormat",
    "detect_format",
    "decode",
    "encode",
    "read_text",
    "write_text",
    "format_json_text",
    "format_json_file",
    "SerializationQuirk",
    "QUIRKS",
    "apply_quirks",
    "entry_to_dict",
    "entry_from_dict",
]
