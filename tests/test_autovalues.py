"""
Tests for the auto value catalog.

These tests verify:
    - Scope push/pop balance, including on errors
    - Capture of control and rule fields, nulled in place
    - Duplicate paths kept in traversal order
    - Replay consuming values in recorded order
"""

import pytest

from canvaspkg.autovalues import (
    DEFAULT_CONTROL_FIELDS,
    AutoValueCatalog,
    AutoValueReplay,
    ScopePath,
    is_rule,
)
from canvaspkg.errors import CompositionError
from canvaspkg.model import AutoValueEntry
from canvaspkg.serialization import JsonFormat


class TestScopePath:
    """Test the explicit scope stack."""

    def test_push_pop(self):
        path = ScopePath()
        path.push("Screen1")
        path.push("Button1")
        assert path.names == ("Screen1", "Button1")
        assert path.pop() == "Button1"
        assert len(path) == 1

    def test_pop_empty_raises(self):
        with pytest.raises(RuntimeError):
            ScopePath().pop()

    def test_enter_pops_on_error(self):
        """A failing subtree leaves the path as it found it."""
        path = ScopePath()
        with pytest.raises(ValueError):
            with path.enter("Screen1"):
                with path.enter("Button1"):
                    raise ValueError("boom")
        assert len(path) == 0


class TestExtract:
    """Test capturing values while decomposing."""

    def test_control_fields(self):
        catalog = AutoValueCatalog()
        control = {"Name": "Button1", "ControlUniqueId": "7", "Index": 1.0, "PublishOrderIndex": 4}
        with catalog.scope("Screen1"), catalog.scope("Button1"):
            residual = catalog.extract(control)
        assert residual == {"Name": "Button1", "ControlUniqueId": None, "Index": 1.0, "PublishOrderIndex": None}
        assert list(residual) == list(control)
        assert catalog.entries == [
            AutoValueEntry(["Screen1", "Button1"], "ControlUniqueId", "7"),
            AutoValueEntry(["Screen1", "Button1"], "PublishOrderIndex", 4),
        ]

    def test_source_is_not_modified(self):
        catalog = AutoValueCatalog()
        control = {"Name": "Button1", "ControlUniqueId": "7"}
        catalog.extract(control)
        assert control["ControlUniqueId"] == "7"

    def test_rule_fields_are_prefixed_with_property(self):
        catalog = AutoValueCatalog()
        with catalog.scope("Button1"):
            residual = catalog.extract({"Property": "OnSelect", "NameMap": "{}"})
        assert residual["NameMap"] is None
        assert catalog.entries == [AutoValueEntry(["Button1"], "OnSelect.NameMap", "{}")]

    def test_absent_fields_yield_nothing(self):
        catalog = AutoValueCatalog()
        catalog.extract({"Name": "Label1"})
        catalog.extract({"Property": "Text", "InvariantScript": "1"})
        assert catalog.entries == []

    def test_null_values_are_captured(self):
        """Presence counts, not truthiness."""
        catalog = AutoValueCatalog()
        catalog.extract({"Name": "Label1", "ControlUniqueId": None})
        assert len(catalog.entries) == 1

    def test_duplicates_are_kept_in_order(self):
        catalog = AutoValueCatalog()
        for value in ("1", "2"):
            with catalog.scope("Header1"), catalog.scope("Title1"):
                catalog.extract({"Name": "Title1", "ControlUniqueId": value})
        assert [e.value for e in catalog.entries] == ["1", "2"]
        assert all(e.path == ["Header1", "Title1"] for e in catalog.entries)

    def test_custom_fields(self):
        catalog = AutoValueCatalog(control_fields=["Index"], rule_fields=[])
        catalog.extract({"Name": "A", "Index": 3.0, "ControlUniqueId": "9"})
        catalog.extract({"Property": "Text", "NameMap": "{}"})
        assert [e.field for e in catalog.entries] == ["Index"]

    def test_component_children_order(self):
        """Per child: rules, nested children, then the child itself."""
        catalog = AutoValueCatalog()
        children = [{
            "Name": "Title1",
            "ControlUniqueId": "12",
            "Rules": [{"Property": "Text", "NameMap": "{}"}],
            "Children": [{"Name": "Inner1", "ControlUniqueId": "13"}],
        }]
        with catalog.scope("Header1"):
            scrubbed = catalog.extract_component_children(children)
        assert [(e.path, e.field) for e in catalog.entries] == [
            (["Header1", "Title1"], "Text.NameMap"),
            (["Header1", "Title1", "Inner1"], "ControlUniqueId"),
            (["Header1", "Title1"], "ControlUniqueId"),
        ]
        assert scrubbed[0]["ControlUniqueId"] is None
        assert scrubbed[0]["Children"][0]["ControlUniqueId"] is None
        assert children[0]["ControlUniqueId"] == "12"


class TestCatalogFile:
    """Test the AutoValues.json form."""

    def test_serialize_and_parse(self):
        catalog = AutoValueCatalog()
        with catalog.scope("Screen1"):
            catalog.extract({"Name": "Screen1", "ControlUniqueId": "4"})
        catalog.record_document("Screen1", "1.json", JsonFormat.INDENTED_CRLF)

        text = catalog.serialize()
        assert "\r\n" not in text

        parsed = AutoValueCatalog.parse(text)
        assert parsed.entries == catalog.entries
        assert parsed.documents == [{"Name": "Screen1", "File": "1.json", "Format": "indented-crlf"}]
        assert parsed.control_fields == DEFAULT_CONTROL_FIELDS

    def test_top_level_keys(self):
        data = AutoValueCatalog().to_dict()
        assert list(data) == ["Fields", "Documents", "AutoValues"]


class TestReplay:
    """Test restoring captured values."""

    def test_restore_in_recorded_order(self):
        entries = [
            AutoValueEntry(["Header1", "Title1"], "ControlUniqueId", "11"),
            AutoValueEntry(["Header1", "Title1"], "ControlUniqueId", "12"),
        ]
        replay = AutoValueReplay(entries)
        restored = []
        for _ in range(2):
            with replay.scope("Header1"), replay.scope("Title1"):
                restored.append(replay.restore({"Name": "Title1", "ControlUniqueId": None}))
        assert [r["ControlUniqueId"] for r in restored] == ["11", "12"]
        assert replay.remaining() == 0

    def test_missing_value_raises(self):
        replay = AutoValueReplay([])
        with pytest.raises(CompositionError):
            replay.restore({"Name": "Button1", "ControlUniqueId": None})

    def test_wrong_path_raises(self):
        replay = AutoValueReplay([AutoValueEntry(["Screen1"], "ControlUniqueId", "4")])
        with replay.scope("Screen2"):
            with pytest.raises(CompositionError):
                replay.restore({"Name": "Screen2", "ControlUniqueId": None})
        assert replay.remaining() == 1

    def test_catalog_replay_uses_catalog_fields(self):
        catalog = AutoValueCatalog(control_fields=["Index"], rule_fields=[])
        catalog.extract({"Name": "A", "Index": 3.0})
        replay = catalog.replay()
        assert replay.restore({"Name": "A", "Index": None}) == {"Name": "A", "Index": 3.0}


def test_is_rule():
    assert is_rule({"Property": "Text"})
    assert not is_rule({"Name": "Button1"})
    assert not is_rule({"Name": "Button1", "Property": "X"})
