"""
Core Model Objects

Defines the data structures the decomposer reads and produces.

These are pure data classes representing:
    - Manifest (app metadata from the package)
    - DocumentHeader (document format version)
    - PublishInfo (resource publishing metadata)
    - Rule (a formula bound to a control property)
    - ChildOrder (positional record of a control's children)
    - AutoValueEntry (one captured volatile value)
    - ControlDecomposition (the split form of one control)

ARCHITECTURAL RULE:
    Controls themselves are NOT modelled as classes.
    They stay the decoded JSON objects (ordered dicts) so that every field,
    known or unknown, survives reserialization byte-for-byte.
    The constants below name the fields this package interprets.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# =========================================================================
# CONTROL JSON FIELDS
# =========================================================================

TOP_PARENT = "TopParent"
NAME = "Name"
RULES = "Rules"
CHILDREN = "Children"
CHILDREN_ORDER = "ChildrenOrder"
TEMPLATE = "Template"
COMPONENT_DEFINITION_INFO = "ComponentDefinitionInfo"
PROPERTY = "Property"
INVARIANT_SCRIPT = "InvariantScript"


# =========================================================================
# FILE LAYOUT
# =========================================================================

class Paths:
    """File and directory names of both the container and the output tree."""

    PACKAGE_APPS = "apps"
    APPS = "Apps"
    AUTO_VALUES = "AutoValues.json"
    BACKGROUND_IMAGE = "BackgroundImage.png"
    CODE = "Code"
    COMPONENT_CODE = "ComponentCode"
    COMPONENTS = "Components"
    CONTROLS = "Controls"
    HEADER = "Header.json"
    ICONS = "Icons"
    MANIFEST_FILE_NAME = "manifest.json"
    METADATA = "MetadataFiles"
    MS_POWER_APPS = "Microsoft.PowerApps"
    RESOURCES = "Resources"
    RESOURCE_PUBLISH_FILE_NAME = "PublishInfo.json"
    LOGO_IMAGE = "Logo"


CODE_FILE_EXT = ".js"
DATA_FILE_EXT = ".json"
MINIMUM_DOC_VERSION = "1.280"


@dataclass(frozen=True)
class Manifest:
    """
    App metadata read from a package's per-app manifest file.

    Read once per bundle entry, immutable thereafter.

    Properties:
        display_name: Human-readable app name (default output directory name)
        description: Free text, may be empty
        document_path: Path of the .msapp document, relative to the apps directory
        background_image: Path of the background image, relative to the apps directory
        icons: Logical icon key -> icon file path
            Example: {"SmallIconUri": "abc123/small.png"}
    """

    display_name: str
    document_path: str
    description: str = ""
    background_image: Optional[str] = None
    icons: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentHeader:
    """
    Document header of an extracted app (Header.json).

    The document version gates verification strictness:
    a reserialization mismatch on a version below MINIMUM_DOC_VERSION
    is reported as "too old" rather than as a diff.
    """

    doc_version: str


@dataclass(frozen=True)
class PublishInfo:
    """Resources/PublishInfo.json. The logo is optional."""

    logo_file_name: Optional[str] = None


@dataclass
class Rule:
    """
    A named formula bound to a control property.

    Properties:
        property: Property name, unique within its control (e.g. "OnSelect")
        script: Formula body, may span multiple lines
    """

    property: str
    script: str = ""


@dataclass
class ChildOrder:
    """
    Positional record of one child, nested for the child's own children.

    INVARIANT:
        For every control, the list of ChildOrder records has the same
        length and the same name set as the control's children.
    """

    name: str
    children_order: Optional[List["ChildOrder"]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {NAME: self.name}
        if self.children_order:
            data[CHILDREN_ORDER] = [child.to_dict() for child in self.children_order]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChildOrder":
        nested = data.get(CHILDREN_ORDER)
        return cls(
            name=data[NAME],
            children_order=[cls.from_dict(child) for child in nested] if nested else None,
        )


@dataclass
class AutoValueEntry:
    """
    One volatile value captured during decomposition.

    Properties:
        path: Control names from the tree root down to the owning control
        field: Field identifier; "<Field>" for controls, "<Property>.<Field>" for rules
        value: The captured JSON value
    """

    path: List[str]
    field: str
    value: Any = None


@dataclass
class ControlDecomposition:
    """
    The split form of one control.

    Produced by the walker, consumed by the writer.
    The source control is never modified; everything here is new.

    Properties:
        name: Control name (also its directory and file stem)
        code: Rendered rule blocks for the .js file
        residual: Control JSON with scripts, children and auto values removed
        children: Decompositions of the children, in original order
        order: ChildOrder records for the children (empty when childless)
    """

    name: str
    code: str
    residual: Dict[str, Any]
    children: List["ControlDecomposition"] = field(default_factory=list)
    order: List[ChildOrder] = field(default_factory=list)

    def walk(self):
        """Yield this decomposition and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()
