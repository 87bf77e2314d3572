from __future__ import annotations

import json
from typing import Any

from ..errors import MalformedProviderResponse

_CLOSERS = {"{": "}", "[": "]"}


def _balanced_span(text: str, start: int) -> int | None:
    """Index one past the bracket closing the one at ``start``, or None."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_json_block(text: str, opener: str = "{") -> Any:
    """
    Parse the first top-level balanced ``{...}`` (or ``[...]``) in ``text``.

    Models often wrap JSON in prose or code fences. A top-level candidate that
    does not decode is skipped as a whole, never searched for nested blocks;
    raises ``MalformedProviderResponse`` when nothing usable is found.
    """
    closer = _CLOSERS[opener]
    pos = text.find(opener) if text else -1
    while pos != -1:
        end = _balanced_span(text, pos)
        if end is None:
            # unclosed, so it swallows the rest of the text
            break
        if text[end - 1] == closer:
            try:
                return json.loads(text[pos:end])
            except json.JSONDecodeError:
                pass
        pos = text.find(opener, end)
    raise MalformedProviderResponse(f"no JSON {opener}{closer} block in provider response")
