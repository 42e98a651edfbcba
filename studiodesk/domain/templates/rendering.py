"""
Contract text rendering

Placeholders look like {{client.name}}. Values come from a nested context
dict and are HTML-escaped; placeholders with no value are left untouched so a
missing variable stays visible in the preview.
"""

import html
import re
from typing import Any, Iterable

PLACEHOLDER = re.compile(r"\{\{\s*([a-zA-Z0-9_.]+)\s*\}\}")


def lookup(path: str, context: dict) -> Any:
    value: Any = context
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return None
    return value


def substitute(text: str, context: dict) -> str:
    if not text:
        return text

    def replace(match: re.Match) -> str:
        value = lookup(match.group(1), context)
        if value is None or value == "":
            return match.group(0)
        return html.escape(str(value))

    return PLACEHOLDER.sub(replace, text)


def placeholders(text: str) -> list[str]:
    return sorted(set(PLACEHOLDER.findall(text or "")))


def missing_variables(variables_schema: dict, context: dict) -> list[str]:
    """Required schema variables with no value in the context"""
    missing = []
    for name, spec in (variables_schema or {}).items():
        required = spec.get("required", False) if isinstance(spec, dict) else bool(spec)
        if required and lookup(name, context) in (None, ""):
            missing.append(name)
    return sorted(missing)


def render_contract(body_html: str, clauses: Iterable, context: dict) -> str:
    """Template body followed by each clause as its own section"""
    parts = [substitute(body_html or "", context)]
    for clause in clauses:
        parts.append(
            f'<section class="clause" data-clause="{html.escape(clause.slug)}">'
            f"<h3>{html.escape(clause.title)}</h3>"
            f"{substitute(clause.body_html, context)}"
            "</section>"
        )
    return "\n".join(parts)
