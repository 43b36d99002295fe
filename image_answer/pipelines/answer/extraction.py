"""Answer extraction from Flowise agent-flow responses.

Flowise returns the result of a prediction nested inside the trace of the
executed agent-flow nodes. Only the last node's ``data.output`` matters, and
its shape depends on the node that produced it:

* ``plain``   - the output is a bare string;
* ``wrapped`` - the output is an object (usually ``{"content": ...}``, and
  answering flows may also put ``lectura`` on it directly);
* ``opaque``  - anything else (numbers, lists, null).

``decode_terminal_output`` classifies the terminal output once; the
``extract_*`` helpers then apply their own precedence on top of it. None of
these functions raise, whatever the response looks like.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

_TRACE_KEY = "agentFlowExecutedData"
_READING_KEY = "lectura"


class OutputKind(str, Enum):
    PLAIN = "plain"
    WRAPPED = "wrapped"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class TerminalOutput:
    """Decoded ``data.output`` of the last executed agent-flow node."""

    kind: OutputKind
    raw: Any
    text: Optional[str] = None
    has_content: bool = False
    content: Any = None
    reading: Optional[str] = None


def _executed_nodes(response: Any) -> Optional[list[Any]]:
    if not isinstance(response, Mapping):
        return None
    nested = response.get("response")
    nodes = nested.get(_TRACE_KEY) if isinstance(nested, Mapping) else None
    if nodes is None:
        nodes = response.get(_TRACE_KEY)
    if not isinstance(nodes, list) or not nodes:
        return None
    return nodes


def decode_terminal_output(response: Any) -> Optional[TerminalOutput]:
    """Return the decoded output of the last executed node, if there is one."""

    nodes = _executed_nodes(response)
    if nodes is None:
        return None

    last = nodes[-1]
    data = last.get("data") if isinstance(last, Mapping) else None
    output = data.get("output") if isinstance(data, Mapping) else None

    if isinstance(output, str):
        return TerminalOutput(kind=OutputKind.PLAIN, raw=output, text=output)
    if isinstance(output, Mapping):
        reading = output.get(_READING_KEY)
        return TerminalOutput(
            kind=OutputKind.WRAPPED,
            raw=output,
            has_content="content" in output,
            content=output.get("content"),
            reading=reading if isinstance(reading, str) else None,
        )
    return TerminalOutput(kind=OutputKind.OPAQUE, raw=output)


def extract_output(response: Any, *, text_fallback: bool = True) -> Optional[str]:
    """Generic path used by the analysis stage.

    Precedence: bare string output, then a string ``content`` on a wrapped
    output, then (when ``text_fallback``) the top-level ``text`` field.
    """

    terminal = decode_terminal_output(response)
    if terminal is not None:
        if terminal.kind is OutputKind.PLAIN:
            return terminal.text
        if terminal.has_content and isinstance(terminal.content, str):
            return terminal.content

    if text_fallback and isinstance(response, Mapping):
        text = response.get("text")
        if isinstance(text, str):
            return text
    return None


def extract_reading(response: Any) -> Optional[str]:
    """Fan-out path: the ``lectura`` field, directly or JSON-encoded in ``content``."""

    terminal = decode_terminal_output(response)
    if terminal is None or terminal.kind is not OutputKind.WRAPPED:
        return None
    if terminal.reading is not None:
        return terminal.reading
    if not isinstance(terminal.content, str):
        return None

    try:
        parsed = json.loads(terminal.content)
    except ValueError:
        return None
    if isinstance(parsed, Mapping):
        reading = parsed.get(_READING_KEY)
        if isinstance(reading, str):
            return reading
    return None


__all__ = [
    "OutputKind",
    "TerminalOutput",
    "decode_terminal_output",
    "extract_output",
    "extract_reading",
]
