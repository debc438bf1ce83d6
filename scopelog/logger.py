"""Render log lines from the context stack visible at the call site.

Line format::

    [LEVEL] label1 > label2: message ({"key":"value"})

The label segment is dropped when no frame carries a label, the data segment
when the merged data is empty.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any

from scopelog.config import get_settings
from scopelog.context.frames import ContextStack, merge_data
from scopelog.context.store import current_stack
from scopelog.sinks import LineSink, stream_sink_for

LABEL_SEPARATOR = " > "


def flatten_stack(stack: ContextStack) -> tuple[list[str], dict[str, Any]]:
    """Label chain (outermost first, unlabeled frames skipped) and merged frame data."""
    labels = [frame.label for frame in stack if frame.label]
    merged = merge_data(*(frame.data for frame in stack))
    return labels, merged


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:  # noqa: BLE001 - a broken __str__ must not break logging
        return object.__repr__(value)


def _jsonable(value: Any, seen: frozenset[int] = frozenset()) -> Any:
    """Plain-JSON copy of ``value``: str keys, no cycles, no NaN/Infinity."""
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        if id(value) in seen:
            return "<cycle>"
        inner = seen | {id(value)}
        if isinstance(value, Mapping):
            return {_safe_str(k): _jsonable(v, inner) for k, v in value.items()}
        return [_jsonable(item, inner) for item in value]
    return _safe_str(value)


def render_data(data: Mapping[str, Any]) -> str:
    try:
        return json.dumps(dict(data), separators=(",", ":"), ensure_ascii=False, allow_nan=False, default=_safe_str)
    except (TypeError, ValueError):
        # Non-string keys, self-references or non-finite floats.
        return json.dumps(_jsonable(data), separators=(",", ":"), ensure_ascii=False)


def render_line(
    level: str,
    message: str,
    stack: ContextStack = (),
    extra: Mapping[str, Any] | None = None,
) -> str:
    labels, merged = flatten_stack(stack)
    if extra:
        merged.update(extra)

    parts = [f"[{level.upper()}] "]
    if labels:
        parts.append(LABEL_SEPARATOR.join(labels) + ": ")
    parts.append(str(message))
    if merged:
        parts.append(f" ({render_data(merged)})")
    return "".join(parts)


_default_sink: LineSink | None = None


def get_default_sink() -> LineSink:
    global _default_sink
    if _default_sink is None:
        _default_sink = stream_sink_for(get_settings().output)
    return _default_sink


def set_default_sink(sink: LineSink | None) -> None:
    global _default_sink
    _default_sink = sink


class ContextLogger:
    """Logger that prefixes every line with the active scope chain."""

    def __init__(self, sink: LineSink | None = None, name: str | None = None) -> None:
        self._sink = sink
        self.name = name

    @property
    def sink(self) -> LineSink:
        return self._sink if self._sink is not None else get_default_sink()

    def log(self, level: str, message: str, data: Mapping[str, Any] | None = None, **fields: Any) -> str:
        extra = merge_data(data, fields)
        line = render_line(level, message, current_stack(), extra)
        self.sink.write(line)
        return line

    def debug(self, message: str, data: Mapping[str, Any] | None = None, **fields: Any) -> str:
        return self.log("DEBUG", message, data, **fields)

    def info(self, message: str, data: Mapping[str, Any] | None = None, **fields: Any) -> str:
        return self.log("INFO", message, data, **fields)

    def warning(self, message: str, data: Mapping[str, Any] | None = None, **fields: Any) -> str:
        return self.log("WARNING", message, data, **fields)

    def error(self, message: str, data: Mapping[str, Any] | None = None, **fields: Any) -> str:
        return self.log("ERROR", message, data, **fields)


def get_logger(name: str | None = None) -> ContextLogger:
    """Logger bound to the process default sink (resolved at write time)."""
    return ContextLogger(name=name)
