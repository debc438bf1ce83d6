from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from scopelog.models.schemas import ScopeDescriptor, ScopeOverride

OVERRIDE_ATTRIBUTE = "log_context"


@dataclass(frozen=True)
class ContextFrame:
    """One active scope's contribution to the stack."""

    label: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict)
    # id() of the instance that pushed the frame; only used for re-entrancy checks.
    owner: int | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.data, Mapping):
            raise TypeError(f"frame data must be a mapping, got {type(self.data).__name__}")
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


ContextStack = tuple[ContextFrame, ...]

EMPTY_STACK: ContextStack = ()


def merge_data(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Shallow left-to-right merge; later layers win on key collision."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


def read_override(target: Any) -> ScopeOverride | None:
    raw = getattr(target, OVERRIDE_ATTRIBUTE, None)
    if raw is None:
        return None
    if isinstance(raw, ScopeOverride):
        return raw
    if isinstance(raw, Mapping):
        return ScopeOverride.model_validate({"label": raw.get("label"), "data": raw.get("data") or {}})
    raise TypeError(
        f"{type(target).__name__}.{OVERRIDE_ATTRIBUTE} must be a ScopeOverride or a mapping, "
        f"got {type(raw).__name__}"
    )


def structural_name(target: Any) -> str:
    cls = target if isinstance(target, type) else type(target)
    return cls.__name__


def resolve_frame(target: Any, descriptor: ScopeDescriptor) -> ContextFrame:
    """
    Compute the effective frame for a call on ``target``.

    Label: instance override, then descriptor default, then the class name.
    Data: descriptor defaults overlaid with instance override data.
    """
    override = read_override(target)
    label = override.label if override is not None and override.label is not None else None
    if label is None:
        label = descriptor.label if descriptor.label is not None else structural_name(target)

    data = merge_data(descriptor.data, override.data if override is not None else None)
    return ContextFrame(label=label, data=data, owner=id(target))
