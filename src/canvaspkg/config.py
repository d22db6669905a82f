"""
Unpack options and their loading.

Priority order (highest to lowest):
    1. CLI arguments (applied with UnpackOptions.merged)
    2. Options file (YAML)
    3. Defaults

Options file keys:

    clobber: true
    onlyExtract: false
    applicationNameOverride: My App
    renameOldPostfix: _1
    renameNewPostfix: _Copy
    autoValues:
      control: [ControlUniqueId, PublishOrderIndex]
      rule: [NameMap]
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from canvaspkg.autovalues import DEFAULT_CONTROL_FIELDS, DEFAULT_RULE_FIELDS
from canvaspkg.errors import ConfigError


@dataclass(frozen=True)
class UnpackOptions:
    """
    Options of one unpack run.

    Properties:
        clobber: Delete the output directory before starting
        only_extract: Stop after extracting the container
        application_name: Output directory name overriding the manifest display name
        rename_old_postfix / rename_new_postfix:
            Literal substitution applied to raw control file text before
            parsing, for bulk renames of copied controls
        control_auto_fields / rule_auto_fields: Volatile fields moved to AutoValues.json
    """

    clobber: bool = False
    only_extract: bool = False
    application_name: Optional[str] = None
    rename_old_postfix: Optional[str] = None
    rename_new_postfix: str = ""
    control_auto_fields: Tuple[str, ...] = DEFAULT_CONTROL_FIELDS
    rule_auto_fields: Tuple[str, ...] = DEFAULT_RULE_FIELDS

    @property
    def rename(self) -> Optional[Tuple[str, str]]:
        if not self.rename_old_postfix:
            return None
        return (self.rename_old_postfix, self.rename_new_postfix or "")

    def merged(self, **overrides: Any) -> "UnpackOptions":
        """Copy with every override that is not None applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown options: {sorted(unknown)}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


_FILE_KEYS = {
    "clobber": "clobber",
    "onlyExtract": "only_extract",
    "applicationNameOverride": "application_name",
    "renameOldPostfix": "rename_old_postfix",
    "renameNewPostfix": "rename_new_postfix",
}


def options_from_dict(data: Dict[str, Any]) -> UnpackOptions:
    """
    Build options from the decoded options file.

    Raises:
        ConfigError: On unknown keys or values of the wrong type
    """
    if data is None:
        return UnpackOptions()
    if not isinstance(data, dict):
        raise ConfigError("Options file must contain a mapping")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "autoValues":
            if not isinstance(value, dict):
                raise ConfigError("'autoValues' must be a mapping")
            for kind, attr in (("control", "control_auto_fields"), ("rule", "rule_auto_fields")):
                if kind in value:
                    names = value[kind]
                    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
                        raise ConfigError(f"'autoValues.{kind}' must be a list of field names")
                    values[attr] = tuple(names)
            continue
        if key not in _FILE_KEYS:
            raise ConfigError(f"Unknown option '{key}'")
        attr = _FILE_KEYS[key]
        if attr in ("clobber", "only_extract") and not isinstance(value, bool):
            raise ConfigError(f"'{key}' must be true or false")
        if attr not in ("clobber", "only_extract") and value is not None and not isinstance(value, str):
            raise ConfigError(f"'{key}' must be a string")
        values[attr] = value
    return UnpackOptions(**values)


def load_options(path: Path) -> UnpackOptions:
    """
    Load options from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Options file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    return options_from_dict(data)


__all__ = ["UnpackOptions", "options_from_dict", "load_options"]
