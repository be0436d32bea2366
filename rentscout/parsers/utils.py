"""Helpers shared by the embedded-state parsers."""

from __future__ import annotations

import html as html_lib
import json
import re
from typing import Any, Iterable, Iterator, List, Optional, Union

from bs4 import BeautifulSoup

_ENTITIES = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
}


def get_nested(data: Any, *path: Union[str, int], default: Any = None) -> Any:
    """Walk dict keys / list indexes; any miss returns ``default``."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return default
            current = current[key]
        else:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
    return default if current is None else current


def remove_space(text: str) -> str:
    """Collapse runs of whitespace (including NBSP) to one space."""
    return re.sub(r'[\s\u00A0]+', ' ', text).strip()


def strip_html(text: Optional[str]) -> Optional[str]:
    """Plain text from an HTML fragment; None stays None."""
    if text is None:
        return None
    stripped = re.sub(r'<[^>]*>', ' ', str(text))
    for entity, replacement in _ENTITIES.items():
        stripped = stripped.replace(entity, replacement)
    stripped = html_lib.unescape(stripped)
    return re.sub(r'\s+', ' ', stripped).strip()


def soup_of(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup or "", "html.parser")


def script_texts(markup: str) -> List[str]:
    """Bodies of every inline <script> block."""
    soup = soup_of(markup)
    return [s.string or s.get_text() or "" for s in soup.find_all("script") if not s.get("src")]


def json_ld_objects(markup: str) -> Iterator[dict]:
    """Every JSON object found in ld+json blocks, flattening lists and @graph."""
    soup = soup_of(markup)
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text() or ""
        try:
            data = json.loads(raw)
        except (ValueError, TypeError):
            continue
        yield from _flatten_ld(data)


def _flatten_ld(data: Any) -> Iterable[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _flatten_ld(item)
    elif isinstance(data, dict):
        yield data
        if isinstance(data.get("@graph"), list):
            yield from _flatten_ld(data["@graph"])


def ld_type_matches(obj: dict, *types: str) -> bool:
    declared = obj.get("@type")
    if isinstance(declared, list):
        return any(t in declared for t in types)
    return declared in types


def first_non_empty(*values: Any) -> Any:
    for value in values:
        if value not in (None, "", [], {}):
            return value
    return None


def text_value(value: Any) -> Optional[str]:
    """Strings as-is, plain numbers as their text; containers and booleans are None."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None
