"""
Tests for unpack options and the YAML options file.
"""

import pytest

from canvaspkg.autovalues import DEFAULT_CONTROL_FIELDS, DEFAULT_RULE_FIELDS
from canvaspkg.config import UnpackOptions, load_options, options_from_dict
from canvaspkg.errors import ConfigError


class TestUnpackOptions:
    """Test option defaults and overrides."""

    def test_defaults(self):
        options = UnpackOptions()
        assert options.clobber is False
        assert options.only_extract is False
        assert options.application_name is None
        assert options.rename is None
        assert options.control_auto_fields == DEFAULT_CONTROL_FIELDS
        assert options.rule_auto_fields == DEFAULT_RULE_FIELDS

    def test_rename(self):
        assert UnpackOptions(rename_old_postfix="_1").rename == ("_1", "")
        assert UnpackOptions(rename_old_postfix="_1", rename_new_postfix="_Copy").rename == ("_1", "_Copy")

    def test_merged_ignores_none(self):
        options = UnpackOptions(clobber=True).merged(clobber=None, application_name="App")
        assert options.clobber is True
        assert options.application_name == "App"

    def test_merged_unknown_key(self):
        with pytest.raises(ConfigError):
            UnpackOptions().merged(colour="red")


class TestOptionsFile:
    """Test loading options from YAML."""

    def test_load(self, tmp_path):
        path = tmp_path / "options.yaml"
        path.write_text(
            "clobber: true\n"
            "applicationNameOverride: Orders\n"
            "renameOldPostfix: _1\n"
            "renameNewPostfix: _Copy\n"
            "autoValues:\n"
            "  control: [ControlUniqueId]\n"
            "  rule: []\n"
        )
        options = load_options(path)
        assert options.clobber is True
        assert options.only_extract is False
        assert options.application_name == "Orders"
        assert options.rename == ("_1", "_Copy")
        assert options.control_auto_fields == ("ControlUniqueId",)
        assert options.rule_auto_fields == ()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "options.yaml"
        path.write_text("")
        assert load_options(path) == UnpackOptions()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_options(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "options.yaml"
        path.write_text("clobber: [unclosed\n")
        with pytest.raises(ConfigError):
            load_options(path)

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="colour"):
            options_from_dict({"colour": "red"})

    def test_wrong_types(self):
        with pytest.raises(ConfigError):
            options_from_dict({"clobber": "yes"})
        with pytest.raises(ConfigError):
            options_from_dict({"applicationNameOverride": 3})
        with pytest.raises(ConfigError):
            options_from_dict({"autoValues": {"control": "ControlUniqueId"}})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            options_from_dict(["clobber"])
