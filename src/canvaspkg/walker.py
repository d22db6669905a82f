"""
Control Tree Walker — splits a control tree into a directory tree.

For every control:

    <dir>/<Name>.js     rule scripts, one block per rule, in rule order
    <dir>/<Name>.json   everything else (the "residual" control)
    <dir>/<Child>/...   one subdirectory per child

ARCHITECTURAL RULE:
    Decomposition is a pure transform. decompose() never mutates the
    control it is given; it builds a ControlDecomposition holding a new
    residual object plus the rendered code. The only side channel is the
    AutoValueCatalog passed to the walker. write() then materializes a
    decomposition on disk.

    This keeps the verifier (which needs the untouched control) and the
    writer (which needs the residual) from ever sharing mutable state.

Lossless input only:
    A control is rejected with ValidationError before anything is written
    when its Children is not a list, when one of its rules has a
    non-string InvariantScript, or when it already carries ChildrenOrder.
    Those values could not be told apart after composition.

Determinism:
    File and directory names come only from control names, and control
    files are processed in sorted order, so decomposing unchanged input
    twice produces identical trees.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from canvaspkg.autovalues import AutoValueCatalog
from canvaspkg.backends.code_file import render_rules
from canvaspkg.errors import ValidationError
from canvaspkg.model import (
    CHILDREN,
    CHILDREN_ORDER,
    CODE_FILE_EXT,
    COMPONENT_DEFINITION_INFO,
    DATA_FILE_EXT,
    INVARIANT_SCRIPT,
    NAME,
    PROPERTY,
    RULES,
    TEMPLATE,
    TOP_PARENT,
    ChildOrder,
    ControlDecomposition,
    Paths,
    Rule,
)
from canvaspkg.serialization import JsonFormat, decode, encode, read_text, write_text
from canvaspkg.verifier import SerializationVerifier

logger = logging.getLogger(__name__)


def component_children(control: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
    """Child list nested in a component definition's template metadata, if any."""
    template = control.get(TEMPLATE)
    if not isinstance(template, dict):
        return None
    info = template.get(COMPONENT_DEFINITION_INFO)
    if not isinstance(info, dict):
        return None
    children = info.get(CHILDREN)
    return children if isinstance(children, list) else None


def with_component_children(template: Dict[str, Any], children: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy of a template whose component definition carries `children`."""
    info = dict(template[COMPONENT_DEFINITION_INFO])
    info[CHILDREN] = children
    copy = dict(template)
    copy[COMPONENT_DEFINITION_INFO] = info
    return copy


def _check_unique(names: List[str], what: str, owner: str) -> None:
    seen = set()
    for name in names:
        if name in seen:
            raise ValidationError(f"Duplicate {what} '{name}' in control '{owner}'")
        seen.add(name)


def _check_restorable(control: Dict[str, Any], name: str) -> None:
    """Reject values the code tree cannot carry back to their exact source form."""
    if CHILDREN_ORDER in control:
        raise ValidationError(f"Control '{name}' already has a '{CHILDREN_ORDER}' field")
    if CHILDREN in control and not isinstance(control[CHILDREN], list):
        raise ValidationError(f"'{CHILDREN}' of control '{name}' is not a list")
    rules = control.get(RULES)
    for rule in rules if isinstance(rules, list) else []:
        if isinstance(rule, dict) and INVARIANT_SCRIPT in rule and not isinstance(rule[INVARIANT_SCRIPT], str):
            raise ValidationError(
                f"'{INVARIANT_SCRIPT}' of rule '{rule.get(PROPERTY)}' in control '{name}' is not a string"
            )


class ControlTreeWalker:
    """
    Depth-first decomposition of control trees.

    Args:
        catalog: Receives every volatile value removed from the tree
    """

    def __init__(self, catalog: AutoValueCatalog):
        self.catalog = catalog

    # =========================================================================
    # PURE DECOMPOSITION
    # =========================================================================

    def decompose(self, control: Dict[str, Any]) -> ControlDecomposition:
        name = control.get(NAME)
        if not isinstance(name, str) or not name:
            raise ValidationError("Control without a Name")
        _check_restorable(control, name)

        with self.catalog.scope(name):
            residual = dict(control)

            rules: List[Rule] = []
            if isinstance(control.get(RULES), list):
                scrubbed_rules = []
                for rule in control[RULES]:
                    scrubbed = self.catalog.extract(rule)
                    rules.append(Rule(property=scrubbed.get(PROPERTY, ""),
                                      script=scrubbed.get(INVARIANT_SCRIPT) or ""))
                    if INVARIANT_SCRIPT in scrubbed:
                        scrubbed[INVARIANT_SCRIPT] = None
                    scrubbed_rules.append(scrubbed)
                residual[RULES] = scrubbed_rules
                _check_unique([r.property for r in rules], "rule", name)

            children = [self.decompose(child) for child in control.get(CHILDREN) or []]
            _check_unique([c.name for c in children], "child", name)
            order = [ChildOrder(name=c.name, children_order=c.order or None) for c in children]

            nested = component_children(control)
            if nested is not None:
                residual[TEMPLATE] = with_component_children(
                    control[TEMPLATE], self.catalog.extract_component_children(nested)
                )

            if CHILDREN in residual:
                residual[CHILDREN] = None
            if order:
                residual[CHILDREN_ORDER] = [o.to_dict() for o in order]

            residual = self.catalog.extract(residual)

        return ControlDecomposition(
            name=name,
            code=render_rules(rules),
            residual=residual,
            children=children,
            order=order,
        )

    # =========================================================================
    # MATERIALIZATION
    # =========================================================================

    def write(self, decomposition: ControlDecomposition, directory: Path,
              top_level: Optional[Dict[str, Any]] = None) -> None:
        """
        Write a decomposition under `directory`.

        Args:
            decomposition: Result of decompose()
            directory: Target directory, created if missing
            top_level: The wrapping document when this is the tree root;
                its TopParent is replaced by the residual root control
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        write_text(directory / (decomposition.name + CODE_FILE_EXT), decomposition.code)

        for child in decomposition.children:
            self.write(child, directory / child.name)

        data = decomposition.residual
        if top_level is not None:
            data = dict(top_level)
            data[TOP_PARENT] = decomposition.residual
        write_text(directory / (directory.name + DATA_FILE_EXT), encode(data, JsonFormat.INDENTED))

    def walk_screen(self, screen: Dict[str, Any], code_directory: Path) -> ControlDecomposition:
        """Decompose a top-level document into code_directory/<TopParent.Name>."""
        top = screen.get(TOP_PARENT)
        if not isinstance(top, dict):
            raise ValidationError(f"Control file has no '{TOP_PARENT}' object")
        decomposition = self.decompose(top)
        self.write(decomposition, Path(code_directory) / decomposition.name, top_level=screen)
        return decomposition

    def walk_directory(self, source_directory: Path, code_directory: Path,
                       verifier: SerializationVerifier,
                       rename: Optional[Tuple[str, str]] = None) -> int:
        """
        Decompose every control file of a directory, then consume it.

        Each file is verified before it is decomposed. Once all files are
        done the catalog is written to code_directory/AutoValues.json and
        the source directory is deleted.

        Args:
            source_directory: Raw control files (Controls/ or Components/)
            code_directory: Output root (Code/ or ComponentCode/)
            verifier: Round-trip gate for each file
            rename: Optional (old, new) literal substitution on raw text

        Returns:
            Number of control files decomposed
        """
        source_directory = Path(source_directory)
        code_directory = Path(code_directory)
        if not source_directory.is_dir():
            return 0

        names = set()
        for file in sorted(p for p in source_directory.iterdir() if p.is_file()):
            logger.info("Extracting file %s", file)
            text = read_text(file)
            if rename and rename[0]:
                logger.info('Renaming Controls from "%s" to "%s".', rename[0], rename[1])
                text = text.replace(rename[0], rename[1])
            screen = decode(text)
            fmt = verifier.verify(screen, text, file)
            top_name = (screen.get(TOP_PARENT) or {}).get(NAME)
            if top_name in names:
                raise ValidationError(f"Two control files define top-level control '{top_name}'")
            decomposition = self.walk_screen(screen, code_directory)
            self.catalog.record_document(decomposition.name, file.name, fmt)
            names.add(decomposition.name)

        code_directory.mkdir(parents=True, exist_ok=True)
        write_text(code_directory / Paths.AUTO_VALUES, self.catalog.serialize())
        shutil.rmtree(source_directory)
        return len(names)


__all__ = ["ControlTreeWalker", "component_children", "with_component_children"]
