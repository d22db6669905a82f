"""
Tests for the rule code file backend.

Rendering must match the documented block layout exactly, and parsing must
be its exact inverse, including for scripts that look like block markers.
"""

import pytest

from canvaspkg.backends.code_file import (
    END_OF_RULE_CODE,
    parse_code,
    render_rule,
    render_rules,
    save_code_file,
)
from canvaspkg.errors import CompositionError
from canvaspkg.model import Rule


class TestRenderRule:
    """Test rendering of single rule blocks."""

    def test_single_line_script(self):
        """A one-line script is indented by one tab and closed by its marker."""
        assert render_rule("OnVisible", 'Notify("Hi")') == 'OnVisible(){\n\tNotify("Hi")\n} // End of OnVisible\n\n'

    def test_multiline_script_is_reindented(self):
        """Every line break of the script is followed by a tab."""
        code = render_rule("Items", "Filter(\n    Orders\n)")
        assert code == "Items(){\n\tFilter(\n\t    Orders\n\t)\n} // End of Items\n\n"

    def test_empty_script(self):
        code = render_rule("Text", "")
        assert code == "Text(){\n\t\n" + END_OF_RULE_CODE + "Text\n\n"

    def test_rules_are_concatenated_in_order(self):
        code = render_rules([Rule("B", "2"), Rule("A", "1")])
        assert code.index("B(){") < code.index("A(){")


class TestParseCode:
    """Test that parsing inverts rendering."""

    @pytest.mark.parametrize("script", [
        "",
        "x\n",
        "a\r\nb",
        "\tindented\n\tmore",
        "} // End of P\n\nP(){\n",
    ])
    def test_parse_inverts_render(self, script):
        """Scripts survive rendering and parsing unchanged."""
        rules = parse_code(render_rule("P", script))
        assert rules == [Rule("P", script)]

    def test_parse_several_rules(self):
        rules = [Rule("OnSelect", "Set(x, 1);\nBack()"), Rule("Text", '"Go"')]
        assert parse_code(render_rules(rules)) == rules

    def test_empty_file(self):
        assert parse_code("") == []

    def test_garbage_raises(self):
        with pytest.raises(CompositionError):
            parse_code("this is not a rule block\n")

    def test_missing_end_marker_raises(self):
        with pytest.raises(CompositionError):
            parse_code("Text(){\n\t\"abc\"\n")


def test_save_code_file_keeps_line_breaks(tmp_path):
    """Code files are written without line-break translation."""
    path = tmp_path / "Button1.js"
    save_code_file([Rule("OnSelect", "a\r\nb")], path)
    assert path.read_bytes() == b"OnSelect(){\n\ta\r\n\tb\n} // End of OnSelect\n\n"
