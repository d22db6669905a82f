"""
Example app builders for demos and tests.

Builds small but realistic control documents (a screen with nested
controls, a component with a component definition child list) and writes
them into .msapp documents and .zip packages laid out like the real ones.
"""
import io
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from canvaspkg.serialization import JsonFormat, encode


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _rule(prop: str, script: str, category: str = "Data") -> Dict[str, Any]:
    return {
        "Property": prop,
        "Category": category,
        "InvariantScript": script,
        "RuleProviderType": "Unknown",
        "NameMap": f"{{\"{prop}\":\"{prop}\"}}",
    }


def _control(name: str, template: str, unique_id: str, index: int,
             rules: List[Dict[str, Any]], children: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "Type": "ControlInfo",
        "Name": name,
        "Template": {"Id": f"http://microsoft.com/appmagic/{template}", "Version": "2.1.0", "Name": template},
        "Index": float(index),
        "PublishOrderIndex": index,
        "VariantName": "",
        "StyleName": f"default{template.capitalize()}Style",
        "ControlUniqueId": unique_id,
        "Rules": rules,
        "IsLocked": False,
        "Children": children or [],
    }


def build_example_screen(name: str = "Screen1") -> Dict[str, Any]:
    """
    A screen with a gallery (holding a label) and a button.

        Screen1
          Gallery1
            Label1
          Button1
    """
    label = _control("Label1", "label", "6", 3, [
        _rule("Text", "ThisItem.Title"),
        _rule("Color", "RGBA(0, 0, 0, 1)", category="Design"),
    ])
    gallery = _control("Gallery1", "gallery", "5", 2, [
        _rule("Items", "Filter(\n    Orders,\n    Status = \"Open\"\n)"),
    ], children=[label])
    button = _control("Button1", "button", "7", 4, [
        _rule("OnSelect", "Set(varCount, varCount + 1);\nNavigate(Screen2, ScreenTransition.Fade)", category="Behavior"),
        _rule("Text", "\"Next\""),
    ])
    screen = _control(name, "screen", "4", 1, [
        _rule("OnVisible", "Notify(\"Hi\")", category="Behavior"),
        _rule("Fill", "RGBA(255, 255, 255, 1)", category="Design"),
    ], children=[gallery, button])
    return {"TopParent": screen}


def build_example_component(name: str = "Header1") -> Dict[str, Any]:
    """A component whose template carries its definition's child list."""
    title = _control("Title1", "label", "11", 1, [_rule("Text", "Parent.Title")])
    component = _control(name, "component", "10", 0, [
        _rule("Title", "\"Header\""),
    ], children=[title])
    component["Template"]["ComponentDefinitionInfo"] = {
        "Name": name,
        "LastModifiedTimestamp": "637000000000000000",
        "Children": [_control("Title1", "label", "12", 1, [_rule("Text", "Parent.Title")])],
    }
    return {"TopParent": component}


def screen_text(screen: Dict[str, Any], fmt: JsonFormat = JsonFormat.INDENTED_CRLF) -> str:
    return encode(screen, fmt)


def build_msapp_bytes(screens: Optional[List[Dict[str, Any]]] = None,
                      components: Optional[List[Dict[str, Any]]] = None,
                      doc_version: str = "1.294",
                      fmt: JsonFormat = JsonFormat.INDENTED_CRLF,
                      logo_file_name: Optional[str] = "logo-8f3e.png",
                      backslash_names: bool = False) -> bytes:
    """
    Build an .msapp document in memory.

    Controls are written as Controls/1.json, Controls/2.json, ... and
    components as Components/1.json, ...
    """
    sep = "\\" if backslash_names else "/"
    if screens is None:
        screens = [build_example_screen()]
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as z:
        z.writestr("Header.json", encode({"DocVersion": doc_version, "MinVersionToLoad": "1.280"}, JsonFormat.COMPACT))
        z.writestr("Properties.json", encode({"Name": "Example App", "Author": ""}, JsonFormat.COMPACT))
        publish_info = {"AppName": "Example App", "LogoFileName": logo_file_name or ""}
        z.writestr(f"Resources{sep}PublishInfo.json", encode(publish_info, JsonFormat.COMPACT))
        if logo_file_name:
            z.writestr(f"Resources{sep}{logo_file_name}", PNG_BYTES)
        for i, screen in enumerate(screens, start=1):
            z.writestr(f"Controls{sep}{i}.json", screen_text(screen, fmt))
        for i, component in enumerate(components or [], start=1):
            z.writestr(f"Components{sep}{i}.json", screen_text(component, fmt))
    return buffer.getvalue()


def write_example_msapp(path: Path, **kwargs: Any) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(build_msapp_bytes(**kwargs))
    return path


def build_example_manifest(app_id: str = "abc123", display_name: str = "Example App") -> Dict[str, Any]:
    return {
        "name": app_id,
        "properties": {
            "displayName": display_name,
            "description": "Orders tracking",
            "appUris": {"documentUri": {"value": f"{app_id}/N{app_id}-document.msapp"}},
            "backgroundImageUri": f"{app_id}/bg-77aa.png",
            "iconUris": {"SmallIconUri": f"{app_id}/icon-11.png", "LargeIconUri": f"{app_id}/icon-22.png"},
        },
    }


def write_example_package(path: Path, apps: Optional[Dict[str, str]] = None, **msapp_kwargs: Any) -> Path:
    """
    Write a .zip package.

    Args:
        path: Package file to create
        apps: app id -> display name (default: one app "abc123")
        msapp_kwargs: Passed on to build_msapp_bytes for every app
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    apps = apps or {"abc123": "Example App"}
    root = "Microsoft.PowerApps/apps"
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as z:
        z.writestr("manifest.json", encode({"schema": "1.0", "resources": list(apps)}, JsonFormat.COMPACT))
        for app_id, display_name in apps.items():
            z.writestr(f"{root}/{app_id}/{app_id}.json",
                       encode(build_example_manifest(app_id, display_name), JsonFormat.COMPACT))
            z.writestr(f"{root}/{app_id}/N{app_id}-document.msapp", build_msapp_bytes(**msapp_kwargs))
            z.writestr(f"{root}/{app_id}/bg-77aa.png", PNG_BYTES)
            z.writestr(f"{root}/{app_id}/icon-11.png", PNG_BYTES)
            z.writestr(f"{root}/{app_id}/icon-22.png", PNG_BYTES)
    return path
