"""
Rule code file renderer for decomposed controls.

Converts a control's rules into one editable text file and back.

Each rule becomes one block:

    OnSelect(){
    	Navigate(Screen2)
    } // End of OnSelect
    <blank line>

Every line break of the script is followed by a tab, so no script line can
ever start at column 0. That keeps the closing marker unambiguous and makes
parsing the exact inverse of rendering.
"""

from pathlib import Path
from typing import Iterable, List

from canvaspkg.errors import CompositionError
from canvaspkg.model import Rule
from canvaspkg.serialization import write_text


END_OF_RULE_CODE = "} // End of "


def render_rule(prop: str, script: str) -> str:
    """Render one rule block."""
    body = "\t" + (script or "").replace("\n", "\n\t")
    return f"{prop}(){{\n{body}\n{END_OF_RULE_CODE}{prop}\n\n"


def render_rules(rules: Iterable[Rule]) -> str:
    """Render rule blocks in order, concatenated."""
    return "".join(render_rule(rule.property, rule.script) for rule in rules)


def parse_code(text: str) -> List[Rule]:
    """
    Parse a code file back into rules, in file order.

    Raises:
        CompositionError: If the text is not a sequence of rule blocks
    """
    rules: List[Rule] = []
    pos = 0
    while pos < len(text):
        header_end = text.find("(){\n\t", pos)
        if header_end < 0 or "\n" in text[pos:header_end]:
            raise CompositionError(f"Expected a rule header at offset {pos}")
        prop = text[pos:header_end]
        body_start = header_end + len("(){\n\t")
        marker = f"\n{END_OF_RULE_CODE}{prop}\n\n"
        body_end = text.find(marker, body_start)
        if body_end < 0:
            raise CompositionError(f"Missing '{END_OF_RULE_CODE}{prop}' for rule at offset {pos}")
        body = text[body_start:body_end]
        rules.append(Rule(property=prop, script=body.replace("\n\t", "\n")))
        pos = body_end + len(marker)
    return rules


def save_code_file(rules: Iterable[Rule], filename: Path) -> None:
    """
    Render rules and save them to a file.

    Args:
        rules: Rules in original order
        filename: Output file path (.js extension recommended)
    """
    write_text(Path(filename), render_rules(rules))


__all__ = ["END_OF_RULE_CODE", "render_rule", "render_rules", "parse_code", "save_code_file"]
