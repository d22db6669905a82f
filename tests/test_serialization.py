"""
Tests for format-preserving JSON serialization.

Control files must encode back to exactly the text they were read from,
so layout detection and encoding are tested against literal text.
"""

import pytest

from canvaspkg.model import AutoValueEntry
from canvaspkg.serialization import (
    UNFORMATTED_PREFIX,
    JsonFormat,
    SerializationQuirk,
    apply_quirks,
    decode,
    detect_format,
    encode,
    entry_from_dict,
    entry_to_dict,
    format_json_file,
    format_json_text,
    read_text,
    write_text,
)


class TestDetectFormat:
    """Test layout detection from the first characters."""

    def test_crlf_indented(self):
        assert detect_format('{\r\n  "a": 1\r\n}') is JsonFormat.INDENTED_CRLF

    def test_lf_indented(self):
        assert detect_format('{\n  "a": 1\n}') is JsonFormat.INDENTED

    def test_compact(self):
        assert detect_format('{"a":1}') is JsonFormat.COMPACT

    def test_tiny_documents(self):
        """Documents too short to carry a line break are compact."""
        assert detect_format("{}") is JsonFormat.COMPACT
        assert detect_format("") is JsonFormat.COMPACT


class TestEncode:
    """Test encoding layouts."""

    def test_compact_has_no_spaces(self):
        assert encode({"a": [1, 2], "b": None}, JsonFormat.COMPACT) == '{"a":[1,2],"b":null}'

    def test_indented_uses_two_spaces(self):
        assert encode({"a": [1]}, JsonFormat.INDENTED) == '{\n  "a": [\n    1\n  ]\n}'

    def test_crlf_indented(self):
        assert encode({"a": 1}, JsonFormat.INDENTED_CRLF) == '{\r\n  "a": 1\r\n}'

    def test_line_breaks_inside_strings_stay_escaped(self):
        """Only layout line breaks become CRLF."""
        text = encode({"s": "a\nb"}, JsonFormat.INDENTED_CRLF)
        assert text == '{\r\n  "s": "a\\nb"\r\n}'

    def test_non_ascii_is_kept(self):
        assert encode({"s": "Größe"}, JsonFormat.COMPACT) == '{"s":"Größe"}'

    def test_key_order_is_preserved(self):
        text = '{"z":1,"a":2,"m":{"y":1,"b":2}}'
        assert encode(decode(text), JsonFormat.COMPACT) == text

    def test_empty_containers_when_indented(self):
        assert encode({"a": [], "b": {}}, JsonFormat.INDENTED) == '{\n  "a": [],\n  "b": {}\n}'


class TestFormatJson:
    """Test the reviewable twins of single-line files."""

    def test_single_line_gets_twin(self):
        assert format_json_text('{"a":1}') == UNFORMATTED_PREFIX + '{"a":1}\n{\n  "a": 1\n}'

    def test_trailing_newline_still_single_line(self):
        assert format_json_text('{"a":1}\n') == UNFORMATTED_PREFIX + '{"a":1}\n{\n  "a": 1\n}'

    def test_unicode_separators_inside_strings(self):
        """Separators other than CR and LF do not end a line."""
        text = '{"s":"a\u2028b\x85c"}'
        assert format_json_text(text) == UNFORMATTED_PREFIX + text + '\n{\n  "s": "a\u2028b\x85c"\n}'

    def test_cr_ends_a_line(self):
        assert format_json_text('{\r"a": 1\r}') is None

    def test_multi_line_is_left_alone(self):
        assert format_json_text('{\n  "a": 1\n}') is None

    def test_format_json_file_only_touches_json(self, tmp_path):
        txt = tmp_path / "notes.txt"
        txt.write_text('{"a":1}')
        assert format_json_file(txt) is False
        assert txt.read_text() == '{"a":1}'

    def test_format_json_file_rewrites(self, tmp_path):
        path = tmp_path / "data.json"
        write_text(path, '{"a":1}')
        assert format_json_file(path) is True
        assert read_text(path).startswith(UNFORMATTED_PREFIX)


class TestQuirks:
    """Test the serializer quirk table."""

    QUIRK = SerializationQuirk(trigger='"DynamicControlDefinitionJson": ', companion='"TemplateDisplayName": null,')

    def test_companion_is_inserted(self):
        text = '{\n  "DynamicControlDefinitionJson": "x",\n  "Other": 1\n}'
        expected = '{\n  "DynamicControlDefinitionJson": "x",\n  "TemplateDisplayName": null,\n  "Other": 1\n}'
        assert self.QUIRK.apply(text) == expected

    def test_companion_is_not_duplicated(self):
        text = '{\n  "DynamicControlDefinitionJson": "x",\n  "TemplateDisplayName": null,\n  "Other": 1\n}'
        assert self.QUIRK.apply(text) == text

    def test_crlf_lines(self):
        text = '{\r\n    "DynamicControlDefinitionJson": "x",\r\n    "Other": 1\r\n}'
        expected = ('{\r\n    "DynamicControlDefinitionJson": "x",\r\n'
                    '    "TemplateDisplayName": null,\r\n    "Other": 1\r\n}')
        assert self.QUIRK.apply(text) == expected

    def test_untriggered_text_is_unchanged(self):
        text = '{\n  "Name": "Button1"\n}'
        assert apply_quirks(text) == text


def test_entry_dict_form():
    entry = AutoValueEntry(path=["Screen1", "Button1"], field="ControlUniqueId", value="7")
    data = entry_to_dict(entry)
    assert data == {"Path": ["Screen1", "Button1"], "Field": "ControlUniqueId", "Value": "7"}
    assert entry_from_dict(data) == entry


def test_read_text_drops_bom_and_keeps_crlf(tmp_path):
    path = tmp_path / "bom.json"
    path.write_bytes(b'\xef\xbb\xbf{\r\n  "a": 1\r\n}')
    assert read_text(path) == '{\r\n  "a": 1\r\n}'
