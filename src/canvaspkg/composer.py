"""
Composer — puts a decomposed code tree back together.

The exact inverse of the walker: for every control directory it reads the
residual data file and the rule code file, restores the scripts, rebuilds
the children in ChildrenOrder order, and replays the volatile values from
AutoValues.json at the same points the walker captured them.

The catalog also records each top-level control's source file name and
layout, so compose_code_tree() reproduces the original control files
byte-for-byte.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from canvaspkg.autovalues import AutoValueCatalog, AutoValueReplay
from canvaspkg.backends.code_file import parse_code
from canvaspkg.errors import CompositionError
from canvaspkg.model import (
    CHILDREN,
    CHILDREN_ORDER,
    CODE_FILE_EXT,
    DATA_FILE_EXT,
    INVARIANT_SCRIPT,
    NAME,
    PROPERTY,
    RULES,
    TEMPLATE,
    TOP_PARENT,
    Paths,
)
from canvaspkg.serialization import JsonFormat, apply_quirks, decode, encode, read_text, write_text
from canvaspkg.walker import component_children, with_component_children

logger = logging.getLogger(__name__)


def _read_data(directory: Path) -> Dict[str, Any]:
    path = directory / (directory.name + DATA_FILE_EXT)
    if not path.is_file():
        raise CompositionError(f"Missing data file {path}")
    return decode(read_text(path))


def _read_scripts(directory: Path, name: str) -> Dict[str, str]:
    path = directory / (name + CODE_FILE_EXT)
    if not path.is_file():
        return {}
    scripts: Dict[str, str] = {}
    for rule in parse_code(read_text(path)):
        if rule.property in scripts:
            raise CompositionError(f"Rule '{rule.property}' appears twice in {path}")
        scripts[rule.property] = rule.script
    return scripts


def compose_control(residual: Dict[str, Any], directory: Path, replay: AutoValueReplay) -> Dict[str, Any]:
    """
    Rebuild one control (and its subtree) from its directory.

    Args:
        residual: The control as stored in its data file
        directory: The control's directory
        replay: Catalog replayer, positioned at the control's parent scope
    """
    directory = Path(directory)
    name = residual.get(NAME)
    if not isinstance(name, str) or not name:
        raise CompositionError(f"Control in {directory} has no Name")

    with replay.scope(name):
        control = dict(residual)

        scripts = _read_scripts(directory, name)
        if isinstance(residual.get(RULES), list):
            rules = []
            for rule in residual[RULES]:
                restored = replay.restore(rule)
                prop = restored.get(PROPERTY, "")
                script = scripts.pop(prop, None)
                if INVARIANT_SCRIPT in restored:
                    if script is None:
                        raise CompositionError(f"No code for rule '{prop}' of control '{name}'")
                    restored[INVARIANT_SCRIPT] = script
                rules.append(restored)
            control[RULES] = rules
        if scripts:
            raise CompositionError(
                f"Code file of control '{name}' has rules missing from its data file: {sorted(scripts)}"
            )

        order = control.pop(CHILDREN_ORDER, None) or []
        children = []
        for entry in order:
            child_directory = directory / entry[NAME]
            children.append(compose_control(_read_data(child_directory), child_directory, replay))
        if CHILDREN in control:
            control[CHILDREN] = children
        elif children:
            raise CompositionError(f"Control '{name}' has a ChildrenOrder but no Children field")

        nested = component_children(control)
        if nested is not None:
            control[TEMPLATE] = with_component_children(control[TEMPLATE], replay.restore_component_children(nested))

        control = replay.restore(control)
    return control


def compose_screen(directory: Path, replay: AutoValueReplay) -> Dict[str, Any]:
    """Rebuild a top-level document from the directory of its root control."""
    directory = Path(directory)
    document = _read_data(directory)
    top = document.get(TOP_PARENT)
    if not isinstance(top, dict):
        raise CompositionError(f"{directory} is not the directory of a top-level control")
    document = dict(document)
    document[TOP_PARENT] = compose_control(top, directory, replay)
    return document


def compose_code_tree(code_directory: Path) -> Dict[str, str]:
    """
    Rebuild every control file recorded in a code tree's catalog.

    Returns:
        Original file name -> file text

    Raises:
        CompositionError: If the tree, the code files and the catalog disagree
    """
    code_directory = Path(code_directory)
    catalog_path = code_directory / Paths.AUTO_VALUES
    if not catalog_path.is_file():
        raise CompositionError(f"Missing {catalog_path}")
    catalog = AutoValueCatalog.parse(read_text(catalog_path))
    replay = catalog.replay()

    files: Dict[str, str] = {}
    for document in catalog.documents:
        screen = compose_screen(code_directory / document["Name"], replay)
        fmt = JsonFormat(document["Format"])
        files[document["File"]] = apply_quirks(encode(screen, fmt))
        logger.debug("Composed %s from %s", document["File"], document["Name"])

    if replay.remaining():
        raise CompositionError(f"{replay.remaining()} auto values in {catalog_path} were never restored")
    return files


def compose_to_directory(code_directory: Path, output_directory: Path) -> List[Path]:
    """Write the control files rebuilt from a code tree into `output_directory`."""
    output_directory = Path(output_directory)
    output_directory.mkdir(parents=True, exist_ok=True)
    written = []
    for file_name, text in compose_code_tree(code_directory).items():
        path = output_directory / file_name
        write_text(path, text)
        written.append(path)
    logger.info("Composed %d control files into %s", len(written), output_directory)
    return written


__all__ = ["compose_control", "compose_screen", "compose_code_tree", "compose_to_directory"]
