#!/usr/bin/env python3
"""
Complete Pipeline Demo: Package → Code Tree → Control Files

Shows the full workflow:
1. Build an example package (.zip holding one .msapp)
2. Unpack it into a source-control friendly tree
3. Inspect the decomposed screen
4. Compose the control files back and compare
"""

import io
import tempfile
import zipfile
from pathlib import Path

from canvaspkg.composer import compose_code_tree
from canvaspkg.config import UnpackOptions
from canvaspkg.examples import build_example_component, build_msapp_bytes, write_example_package
from canvaspkg.serialization import read_text
from canvaspkg.unpacker import unpack


def main():
    work = Path(tempfile.mkdtemp(prefix="canvaspkg-demo-"))

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Package → Code Tree → Control Files")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Build package
    # =========================================================================
    print("\n1. BUILDING PACKAGE...")
    package = write_example_package(work / "package.zip", components=[build_example_component()])
    with zipfile.ZipFile(package) as z:
        for name in z.namelist():
            print(f"   ✓ {name}")

    # =========================================================================
    # STEP 2: Unpack
    # =========================================================================
    print("\n2. UNPACKING...")
    output = work / "out"
    unpack(package, output, UnpackOptions(clobber=True))
    app = output / "Apps" / "Example App"
    for path in sorted(app.rglob("*")):
        if path.is_file():
            print(f"   ✓ {path.relative_to(output)}")

    # =========================================================================
    # STEP 3: Sample code file
    # =========================================================================
    print("\n3. SAMPLE CODE FILE (Button1.js):")
    print("-" * 80)
    for line in read_text(app / "Code" / "Screen1" / "Button1" / "Button1.js").split("\n"):
        print(f"   {line}")

    # =========================================================================
    # STEP 4: Compose back
    # =========================================================================
    print("\n4. COMPOSING...")
    with zipfile.ZipFile(io.BytesIO(build_msapp_bytes(components=[build_example_component()]))) as z:
        originals = {name.split("/")[-1]: z.read(name).decode("utf-8")
                     for name in z.namelist() if name.startswith("Controls/")}
    composed = compose_code_tree(app / "Code")
    for name, text in composed.items():
        status = "identical" if originals.get(name) == text else "DIFFERENT"
        print(f"   ✓ {name}: {len(text)} characters, {status}")

    print("\n" + "=" * 80)
    print("PIPELINE COMPLETE!")
    print(f"\nOutput written to {output}")
    print("=" * 80)


if __name__ == "__main__":
    main()
