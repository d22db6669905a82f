"""Backends for decomposed output files (rule code files)."""

from .code_file import parse_code, render_rule, render_rules, save_code_file

__all__ = ["parse_code", "render_rule", "render_rules", "save_code_file"]
