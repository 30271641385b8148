# agent/concierge/tools.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union, get_args, get_origin, Literal

from pydantic import BaseModel
from pydantic_core import PydanticUndefined

from models.agent import AgentContext

logger = logging.getLogger(__name__)

ToolFn = Callable[[Dict[str, Any], AgentContext], Any]


class ToolName(str, Enum):
    SEARCH = "search"
    PROFILE = "profile"


def resolve_tool_name(name: Any) -> Optional[ToolName]:
    """Map model output to a known tool; None means unknown."""
    if not isinstance(name, str):
        return None
    try:
        return ToolName(name.strip().lower())
    except ValueError:
        return None


class DuplicateToolError(ValueError):
    pass


class RegistryFrozenError(RuntimeError):
    pass


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    fn: ToolFn
    args_model: type[BaseModel]
    description: str = "No description provided."


class ToolRegistry:
    """Fixed set of tools, filled at startup and frozen before the first request."""

    def __init__(self) -> None:
        self._tools: Dict[ToolName, ToolSpec] = {}
        self._frozen = False

    def register(self, spec: ToolSpec) -> "ToolRegistry":
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{spec.name.value}': registry is frozen")
        if spec.name in self._tools:
            raise DuplicateToolError(f"Tool '{spec.name.value}' is already registered")
        self._tools[spec.name] = spec
        return self

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: Union[str, ToolName]) -> Optional[ToolSpec]:
        tool = name if isinstance(name, ToolName) else resolve_tool_name(name)
        if tool is None:
            return None
        return self._tools.get(tool)

    def names(self) -> List[str]:
        return [t.value for t in self._tools]

    def specs(self) -> List[ToolSpec]:
        return list(self._tools.values())


def _extract_type(field_type) -> str:
    origin = get_origin(field_type)

    # Handle Optional / Union[..., None]
    if origin is Union:
        args = get_args(field_type)
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            return f"{_extract_type(non_none[0])} | null"
        return " | ".join(_extract_type(a) for a in args)

    if origin is Literal:
        return " | ".join(repr(v) for v in get_args(field_type))

    if origin in (list, List):
        return f"List[{_extract_type(get_args(field_type)[0])}]"

    if origin in (dict, Dict):
        k, v = get_args(field_type)
        return f"Dict[{_extract_type(k)}, {_extract_type(v)}]"

    if isinstance(field_type, type) and issubclass(field_type, Enum):
        return " | ".join(repr(m.value) for m in field_type)

    return getattr(field_type, "__name__", str(field_type))


def render_tool_reference(tool_name: str, description: str, args_model: type[BaseModel]) -> str:
    """Render a single tool reference block."""
    lines = []
    lines.append("-" * 40)
    lines.append(f"TOOL: {tool_name}")
    lines.append(f"Purpose: {description}")
    lines.append("")
    lines.append("Arguments (JSON object):")

    for field_name, field_info in args_model.model_fields.items():
        ftype = _extract_type(field_info.annotation)
        # pydantic v2: required fields have default PydanticUndefined
        is_required = field_info.default is PydanticUndefined and field_info.default_factory is None
        req_label = "required" if is_required else "optional"
        lines.append(f"  {field_name:12s} ({ftype}, {req_label})")
        if field_info.description:
            lines.append(f"      {field_info.description}")

    lines.append("-" * 40)
    return "\n".join(lines)


def build_tools_reference(registry: ToolRegistry) -> str:
    blocks = [
        render_tool_reference(spec.name.value, spec.description, spec.args_model)
        for spec in registry.specs()
    ]
    return "=== TOOLS REFERENCE ===\n" + "\n\n".join(blocks)
