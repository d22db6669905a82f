"""
Unpack pipeline.

    unpack(source, output, options)

Package (.zip):
    extract -> require Microsoft.PowerApps/ -> for each apps/<id>/:
        parse manifest -> unpack the app's .msapp into Apps/<name>
        -> relocate the remaining package files into Apps/<name>/MetadataFiles

App document (.msapp):
    extract -> read Header.json -> decompose Controls/ into Code/
    and Components/ into ComponentCode/ -> rename the auto-named logo

A ValidationError anywhere in one package entry (manifest, app document
or relocation) skips that entry; every
other error aborts the run. Apps already unpacked are left in place.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List

from canvaspkg.autovalues import AutoValueCatalog
from canvaspkg.config import UnpackOptions
from canvaspkg.container import extract_archive
from canvaspkg.errors import ValidationError
from canvaspkg.manifest import (
    find_app_manifest,
    output_name,
    parse_header,
    parse_manifest_file,
    validate_package_root,
)
from canvaspkg.model import Paths
from canvaspkg.relocator import MetadataRelocator, rename_logo
from canvaspkg.serialization import read_text
from canvaspkg.verifier import SerializationVerifier
from canvaspkg.walker import ControlTreeWalker

logger = logging.getLogger(__name__)


def unpack(source: Path, output_directory: Path, options: UnpackOptions = UnpackOptions()) -> None:
    """
    Unpack a package or an app document into `output_directory`.

    Args:
        source: .zip package or .msapp document
        output_directory: Target directory
        options: Run options

    Raises:
        UnpackError: On any failure of the run
    """
    source = Path(source)
    output_directory = Path(output_directory)

    if options.clobber and output_directory.exists():
        logger.info("Deleting files in %s", output_directory)
        shutil.rmtree(output_directory)

    logger.info("Extracting files from %s to %s", source, output_directory)
    extract_archive(source, output_directory, overwrite=True)
    if source.suffix.lower() == ".zip":
        unpack_package(output_directory, options)
    elif not options.only_extract:
        unpack_app(output_directory, options)


def unpack_package(output_directory: Path, options: UnpackOptions) -> List[Path]:
    """
    Unpack every app of an extracted package.

    Returns:
        Output directories of the apps that were unpacked
    """
    output_directory = Path(output_directory)
    apps_directory = validate_package_root(output_directory)
    if not apps_directory.is_dir():
        raise ValidationError(f"Invalid zip file.  Missing folder \"{Paths.MS_POWER_APPS}/{Paths.PACKAGE_APPS}\"")

    unpacked = []
    for app_source in sorted(p for p in apps_directory.iterdir() if p.is_dir()):
        try:
            manifest = parse_manifest_file(find_app_manifest(app_source))
            document = apps_directory / manifest.document_path
            if not document.is_file():
                raise ValidationError(f"App document {document} named in the manifest does not exist")

            app_output = output_directory / Paths.APPS / output_name(manifest, options.application_name)
            logger.info("Extracting App %s - %s", manifest.display_name, manifest.description)
            unpack(document, app_output, options)
            document.unlink()
            MetadataRelocator(manifest).relocate(document.parent, app_output, apps_directory)
        except ValidationError as e:
            logger.error("Skipping %s: %s", app_source.name, e)
            continue
        unpacked.append(app_output)
    return unpacked


def unpack_app(app_directory: Path, options: UnpackOptions) -> None:
    """Decompose the control trees of an extracted app document in place."""
    app_directory = Path(app_directory)
    header_path = app_directory / Paths.HEADER
    if not header_path.is_file():
        raise ValidationError(f"Missing {header_path}")
    header = parse_header(read_text(header_path))
    verifier = SerializationVerifier(header.doc_version)

    for source, code in ((Paths.CONTROLS, Paths.CODE), (Paths.COMPONENTS, Paths.COMPONENT_CODE)):
        # Screens and components each get their own catalog.
        catalog = AutoValueCatalog(options.control_auto_fields, options.rule_auto_fields)
        ControlTreeWalker(catalog).walk_directory(
            app_directory / source,
            app_directory / code,
            verifier,
            rename=options.rename,
        )

    rename_logo(app_directory)


__all__ = ["unpack", "unpack_package", "unpack_app"]
