"""Placeholder substitution over template HTML and editor node trees."""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

EMPTY_HTML = "<p></p>"
PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_.]+)\s*\}\}")

VariableMap = Mapping[str, Any]


def replace_variables(text: str, variables: VariableMap) -> str:
    """Replace ``{{ key }}`` placeholders; unknown keys are left as written."""

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in variables or variables[key] is None:
            return match.group(0)
        return str(variables[key])

    return PLACEHOLDER_RE.sub(_sub, text)


def ensure_editor_nodes(value: Any) -> list[dict[str, Any]] | None:
    """Coerce stored editor content into a list of typed nodes, or ``None``.

    An empty list stays an empty list; only blank scalars mean "no content".
    """
    if value is None or (isinstance(value, (str, int, float)) and not value):
        return None
    if isinstance(value, list):
        return [node for node in value if isinstance(node, dict) and isinstance(node.get("type"), str)]
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        return ensure_editor_nodes(parsed)
    if isinstance(value, dict) and isinstance(value.get("nodes"), list):
        return ensure_editor_nodes(value["nodes"])
    return None


def fill_editor_nodes(nodes: list[dict[str, Any]], variables: VariableMap) -> list[dict[str, Any]]:
    """Return a copy of ``nodes`` with placeholders replaced in text and string attrs.

    Children are copied as given, typed or not.
    """
    filled = []
    for node in nodes:
        if not isinstance(node, dict):
            node = {}
        result: dict[str, Any] = {"type": node["type"]} if "type" in node else {}
        if isinstance(node.get("text"), str):
            result["text"] = replace_variables(node["text"], variables)
        attrs = node.get("attrs")
        if isinstance(attrs, dict):
            result["attrs"] = {
                key: replace_variables(value, variables) if isinstance(value, str) else value
                for key, value in attrs.items()
            }
        children = node.get("children")
        if isinstance(children, list) and children:
            result["children"] = fill_editor_nodes(children, variables)
        filled.append(result)
    return filled


def _load_json_object(raw: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_template_content(raw: str | None) -> tuple[str, list[dict[str, Any]] | None, Any]:
    """Split a template's stored content into ``(html, editor_nodes, metadata)``."""
    if not raw:
        return EMPTY_HTML, None, None
    html = raw
    nodes = None
    metadata = None
    parsed = _load_json_object(raw)
    if parsed is not None:
        if isinstance(parsed.get("content_html"), str):
            html = parsed["content_html"]
        nodes = ensure_editor_nodes(parsed.get("content_editor_json"))
        metadata = parsed.get("metadata")
    if not html or not html.strip():
        html = EMPTY_HTML
    return html, nodes, metadata


def parse_stored_document_content(raw: str | None) -> tuple[str, list[dict[str, Any]] | None, Any]:
    """Like ``parse_template_content`` but for generated documents."""
    if not raw:
        return EMPTY_HTML, None, None
    parsed = _load_json_object(raw)
    if parsed is None:
        return raw.strip() or EMPTY_HTML, None, None
    html = parsed.get("content_html")
    if not isinstance(html, str) or not html.strip():
        html = EMPTY_HTML
    return html, ensure_editor_nodes(parsed.get("content_editor_json")), parsed.get("metadata")


def normalize_variables(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        return _load_json_object(value) or {}
    return {}


def serialize_document_content(
    html: str, nodes: list[dict[str, Any]] | None, metadata: Any
) -> str:
    return json.dumps(
        {"content_html": html, "content_editor_json": nodes, "metadata": metadata},
        ensure_ascii=False,
    )
