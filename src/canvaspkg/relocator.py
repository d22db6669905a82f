"""
Metadata Relocator — gives loosely named container files canonical names.

A package stores an app's background image and icons under generated file
names, referenced from the app manifest. After the app has been
decomposed, every file left in the app's raw package directory is moved
into <app>/MetadataFiles/, renamed where the manifest says what it is:

    background image        -> BackgroundImage.png
    icon "<Key>Uri"         -> Icons/<Key>.png
    icon "<Key>"            -> Icons/<Key>
    anything else           -> its own file name

Single-line JSON files gain a reviewable twin (see format_json_file).

The app's auto-named logo in Resources/ is renamed the same way, using the
file name recorded in Resources/PublishInfo.json.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Optional

from canvaspkg.errors import RelocationError
from canvaspkg.manifest import parse_publish_info
from canvaspkg.model import Manifest, Paths
from canvaspkg.serialization import format_json_file, read_text

logger = logging.getLogger(__name__)


ICON_KEY_SUFFIX = "Uri"


def metadata_file_mappings(manifest: Manifest) -> Dict[str, str]:
    """
    Build the source -> canonical name table for an app.

    Keys are the paths as the manifest records them; values are paths
    relative to the MetadataFiles directory.
    """
    mapping: Dict[str, str] = {}
    if manifest.background_image:
        mapping[manifest.background_image] = Paths.BACKGROUND_IMAGE
    for key, file_name in manifest.icons.items():
        if key.endswith(ICON_KEY_SUFFIX):
            key = key[:-len(ICON_KEY_SUFFIX)] + ".png"
        mapping[file_name] = f"{Paths.ICONS}/{key}"
    return mapping


class MetadataRelocator:
    """
    Moves an app's residual package files into its MetadataFiles directory.

    Args:
        manifest: The app's manifest (source of the name mappings)
    """

    def __init__(self, manifest: Manifest):
        self.manifest = manifest
        self.mapping = metadata_file_mappings(manifest)

    def destination_name(self, file: Path, apps_directory: Optional[Path] = None) -> str:
        """
        Canonical name of `file` relative to MetadataFiles.

        The manifest records paths relative to the package's apps
        directory; a bare file name is accepted as well.
        """
        if apps_directory is not None:
            relative = Path(file).relative_to(apps_directory).as_posix()
            if relative in self.mapping:
                return self.mapping[relative]
        return self.mapping.get(Path(file).name, Path(file).name)

    def relocate(self, source_directory: Path, app_output_directory: Path,
                 apps_directory: Optional[Path] = None) -> Dict[str, Path]:
        """
        Move every file of `source_directory` into <app>/MetadataFiles.

        Existing destination files are overwritten.

        Returns:
            Source file name -> destination path
        """
        source_directory = Path(source_directory)
        metadata_directory = Path(app_output_directory) / Paths.METADATA
        metadata_directory.mkdir(parents=True, exist_ok=True)
        logger.info("Copying metadata files from %s to %s", source_directory, metadata_directory)

        moved: Dict[str, Path] = {}
        for file in sorted(p for p in source_directory.iterdir() if p.is_file()):
            destination = metadata_directory / self.destination_name(file, apps_directory)
            destination.parent.mkdir(parents=True, exist_ok=True)
            if destination.exists():
                destination.unlink()
            try:
                shutil.move(str(file), str(destination))
            except OSError as e:
                raise RelocationError(f"Unable to move {file} to {destination}: {e}")
            format_json_file(destination)
            moved[file.name] = destination
        return moved


def rename_logo(app_directory: Path) -> Optional[Path]:
    """
    Rename the auto-named logo in Resources/ to Logo<ext>.

    Returns:
        The new logo path, or None when the app has no logo

    Raises:
        RelocationError: If PublishInfo.json or the logo file is missing
    """
    resources = Path(app_directory) / Paths.RESOURCES
    publish_info_path = resources / Paths.RESOURCE_PUBLISH_FILE_NAME
    if not publish_info_path.is_file():
        raise RelocationError(f"Missing {publish_info_path}")
    logger.info("Extracting file %s", publish_info_path)
    info = parse_publish_info(read_text(publish_info_path))

    if not info.logo_file_name:
        return None

    from_name = resources / info.logo_file_name
    to_name = resources / (Paths.LOGO_IMAGE + Path(info.logo_file_name).suffix)
    if from_name == to_name:
        return to_name
    if not from_name.is_file():
        raise RelocationError(f"Logo file '{from_name}' named in {publish_info_path} does not exist")

    logger.info("Renaming auto named file '%s' to '%s'.", from_name, to_name)
    if to_name.exists():
        to_name.unlink()
    shutil.move(str(from_name), str(to_name))
    return to_name


__all__ = ["ICON_KEY_SUFFIX", "metadata_file_mappings", "MetadataRelocator", "rename_logo"]
