"""
Serialization Verifier — proves a control file survives a round trip.

Before a top-level control is split into files, its decoded form is
encoded again in the layout of the source and compared byte-for-byte with
the source text. Anything the encoder cannot reproduce would be silently
lost by decomposition, so any difference stops the unpack.

IMPORTANT: This is a hard gate. It does NOT decompose anything and it does
NOT touch the catalog; the caller only proceeds if verify() returns.

On a mismatch, four diagnostic files are written next to the source:

    <file>.original            source text as read
    <file>.original.json       reviewable twin of the source
    <file>.reserialized        text produced by the encoder
    <file>.reserialized.json   reviewable twin of the encoder output

and the first difference is located twice: once in the raw pair and once
in the twins.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from canvaspkg.errors import SerializationMismatchError, VersionTooOldError
from canvaspkg.manifest import is_version_supported
from canvaspkg.model import MINIMUM_DOC_VERSION
from canvaspkg.serialization import (
    QUIRKS,
    JsonFormat,
    SerializationQuirk,
    apply_quirks,
    detect_format,
    encode,
    format_json_file,
    read_text,
    write_text,
)

logger = logging.getLogger(__name__)


@dataclass
class DiffLocation:
    """
    Where two texts first differ.

    Properties:
        offset: Index of the first differing character
            (length of the shorter text if one is a prefix of the other)
        line: Zero-based line number, counted on the original text
        column: Characters since the last line break, including the current one
    """

    offset: int
    line: int
    column: int


def find_first_difference(original: str, reserialized: str, skip_first_line: bool = False) -> DiffLocation:
    """
    Locate the first differing character of two texts.

    Args:
        original: Source text
        reserialized: Encoder output
        skip_first_line: Ignore differences on line 0. Reviewable twins of
            single-line documents start with the unformatted-marker line,
            which always differs between the two sides.
    """
    shortest = min(len(original), len(reserialized))
    line = 0
    column = 0
    offset = shortest
    for i in range(shortest):
        if original[i] == "\n":
            line += 1
            column = 0
        else:
            column += 1

        if original[i] == reserialized[i]:
            continue
        if line == 0 and skip_first_line:
            continue
        offset = i
        break
    return DiffLocation(offset=offset, line=line, column=column)


def _describe(location: DiffLocation, file: Path, original_file: Path, reserialized_file: Path,
              formatted: bool) -> str:
    format_text = " formatted " if formatted else " "
    return (
        f"Character at position: {location.offset} on line: {location.line} at {location.column} "
        f"is not correct.  To prevent potential app defects, extracting file {file} has stopped.\n"
        f"See '{original_file}' for extracted{format_text}version vs output{format_text}version "
        f"'{reserialized_file}'.\n\n"
    )


def _write_with_twin(path: Path, text: str) -> Path:
    write_text(path, text)
    twin = path.with_name(path.name + ".json")
    shutil.copyfile(path, twin)
    format_json_file(twin)
    return twin


class SerializationVerifier:
    """
    Verifies control files against the document version of their app.

    Args:
        doc_version: Document version from Header.json
        minimum_version: Oldest version whose drift is reported as a diff
        quirks: Compensations applied to the encoder output before comparing
    """

    def __init__(self, doc_version: str, minimum_version: str = MINIMUM_DOC_VERSION,
                 quirks: Iterable[SerializationQuirk] = QUIRKS):
        self.doc_version = doc_version
        self.minimum_version = minimum_version
        self.quirks = tuple(quirks)

    def reserialize(self, document: Any, fmt: JsonFormat) -> str:
        return apply_quirks(encode(document, fmt), self.quirks)

    def verify(self, document: Any, source_text: str, source_file: Optional[Path] = None) -> JsonFormat:
        """
        Check that `document` encodes back to exactly `source_text`.

        Args:
            document: Decoded control file
            source_text: Text the document was decoded from
            source_file: Where the text came from; diagnostics are written beside it

        Returns:
            The detected layout of the source

        Raises:
            VersionTooOldError: On a mismatch below the minimum document version
            SerializationMismatchError: On a mismatch otherwise
        """
        fmt = detect_format(source_text)
        reserialized = self.reserialize(document, fmt)
        if reserialized == source_text:
            logger.debug("Verified %s (%s)", source_file, fmt.value)
            return fmt

        if not is_version_supported(self.doc_version, self.minimum_version):
            raise VersionTooOldError(self.doc_version, self.minimum_version)

        raw = find_first_difference(source_text, reserialized)
        if source_file is None:
            raise SerializationMismatchError(
                f"Unable to re-serialize json to match source!  Character at position: {raw.offset} "
                f"on line: {raw.line} at {raw.column} is not correct.",
                locations={"raw": raw},
            )

        source_file = Path(source_file)
        original_file = source_file.with_name(source_file.name + ".original")
        reserialized_file = source_file.with_name(source_file.name + ".reserialized")
        original_twin = _write_with_twin(original_file, source_text)
        reserialized_twin = _write_with_twin(reserialized_file, reserialized)

        formatted = find_first_difference(read_text(original_twin), read_text(reserialized_twin),
                                          skip_first_line=True)
        message = (
            _describe(raw, source_file, original_file, reserialized_file, formatted=False)
            + _describe(formatted, source_file, original_twin, reserialized_twin, formatted=True)
        )
        logger.error("Reserialization of %s does not match its source", source_file)
        raise SerializationMismatchError(
            "Unable to re-serialize json to match source!  " + message,
            locations={"raw": raw, "formatted": formatted},
            artifacts=[str(original_file), str(original_twin), str(reserialized_file), str(reserialized_twin)],
        )


__all__ = ["DiffLocation", "find_first_difference", "SerializationVerifier"]
