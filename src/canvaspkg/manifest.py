"""
Manifest Parser (Layer 1: Raw Container Metadata → Model).

Reads the small JSON documents that describe a package and an app:

    Microsoft.PowerApps/apps/<id>/<id>.json   -> Manifest
    <app>/Header.json                          -> DocumentHeader
    <app>/Resources/PublishInfo.json           -> PublishInfo

Manifest layout:
    Values are read from a top-level "properties" object when present,
    otherwise from the document root.

        displayName                 (required)
        description                 (optional)
        appUris.documentUri.value   (required) path of the .msapp document
        backgroundImageUri          (optional)
        iconUris                    (optional) logical key -> file path
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from canvaspkg.errors import ValidationError
from canvaspkg.model import DocumentHeader, Manifest, Paths, PublishInfo
from canvaspkg.serialization import decode, read_text

logger = logging.getLogger(__name__)


def _decode_object(text: str, what: str) -> Dict[str, Any]:
    try:
        data = decode(text)
    except ValueError as e:
        raise ValidationError(f"Invalid {what} JSON: {e}")
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid {what}: expected a JSON object")
    return data


def _lookup(data: Dict[str, Any], dotted: str) -> Any:
    """Follow a dotted key path, returning None where it stops."""
    node: Any = data
    for key in dotted.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def parse_manifest(text: str) -> Manifest:
    """
    Parse an app manifest.

    Args:
        text: Manifest JSON

    Returns:
        Manifest

    Raises:
        ValidationError: If the JSON is invalid or a required value is missing
    """
    data = _decode_object(text, "manifest")
    props = data.get("properties", data)
    if not isinstance(props, dict):
        raise ValidationError("Invalid manifest: 'properties' must be an object")

    display_name = props.get("displayName")
    if not isinstance(display_name, str) or not display_name.strip():
        raise ValidationError("Manifest is missing 'displayName'")

    document_path = _lookup(props, "appUris.documentUri.value")
    if not isinstance(document_path, str) or not document_path:
        raise ValidationError(f"Manifest for '{display_name}' is missing 'appUris.documentUri.value'")

    icons = props.get("iconUris") or {}
    if not isinstance(icons, dict):
        raise ValidationError(f"Manifest for '{display_name}': 'iconUris' must be an object")

    return Manifest(
        display_name=display_name,
        description=props.get("description") or "",
        document_path=document_path,
        background_image=props.get("backgroundImageUri") or None,
        icons={str(k): str(v) for k, v in icons.items() if v},
    )


def parse_header(text: str) -> DocumentHeader:
    data = _decode_object(text, "header")
    version = data.get("DocVersion")
    if not isinstance(version, str) or not version:
        raise ValidationError("Header is missing 'DocVersion'")
    return DocumentHeader(doc_version=version)


def parse_publish_info(text: str) -> PublishInfo:
    data = _decode_object(text, "publish info")
    return PublishInfo(logo_file_name=data.get("LogoFileName") or None)


def parse_version(version: str) -> Tuple[int, ...]:
    """
    Turn "1.280" into (1, 280) so versions compare numerically.

    Raises:
        ValidationError: If a component is not a number
    """
    try:
        return tuple(int(part) for part in version.strip().split("."))
    except ValueError:
        raise ValidationError(f"Invalid document version: '{version}'")


def is_version_supported(version: str, minimum: str) -> bool:
    return parse_version(version) >= parse_version(minimum)


def validate_package_root(directory: Path) -> Path:
    """
    Check that an extracted package has its expected root folder.

    Returns:
        Path of the package's apps directory

    Raises:
        ValidationError: If the root folder is missing
    """
    root = Path(directory) / Paths.MS_POWER_APPS
    if not root.is_dir():
        raise ValidationError(f'Invalid zip file.  Missing root folder "{Paths.MS_POWER_APPS}"')
    return root / Paths.PACKAGE_APPS


def find_app_manifest(app_dir: Path) -> Path:
    """Locate an app's manifest: <id>/<id>.json, else <id>/manifest.json."""
    app_dir = Path(app_dir)
    for candidate in (app_dir / f"{app_dir.name}.json", app_dir / Paths.MANIFEST_FILE_NAME):
        if candidate.is_file():
            return candidate
    raise ValidationError(f"No manifest found in {app_dir}")


def parse_manifest_file(path: Path) -> Manifest:
    logger.debug("Reading manifest %s", path)
    return parse_manifest(read_text(Path(path)))


def output_name(manifest: Manifest, override: Optional[str] = None) -> str:
    """Output directory name for an app: the override if given, else its display name."""
    if override and override.strip():
        return override
    return manifest.display_name


__all__ = [
    "parse_manifest",
    "parse_manifest_file",
    "parse_header",
    "parse_publish_info",
    "parse_version",
    "is_version_supported",
    "validate_package_root",
    "find_app_manifest",
    "output_name",
]
