from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ScopeDescriptor(BaseModel):
    """Static configuration attached to a scope type or decoration site."""

    model_config = ConfigDict(frozen=True)

    label: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    # None defers to SCOPELOG_REENTRANT_FRAMES.
    reentrant: bool | None = None

    def with_overrides(self, label: str | None = None, data: dict[str, Any] | None = None) -> ScopeDescriptor:
        merged = {**self.data, **(data or {})}
        return self.model_copy(update={"label": label if label is not None else self.label, "data": merged})


class ScopeOverride(BaseModel):
    """Per-instance label/data, read fresh on every instrumented call."""

    label: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
