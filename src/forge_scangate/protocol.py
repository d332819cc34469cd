"""Tool protocol: parameter declarations and results shared by the plugin and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from forge_scangate.context import ExecutionContext


class ResultStatus(Enum):
    """Outcome of a tool run."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ToolResult:
    """Returned by every plugin run.

    Attributes:
        status: Overall outcome.
        summary: Human-readable one-line summary. For failures this is the cause line.
        data: Structured output (must be JSON-serializable). ``data["output"]``
              holds the rendered console report when there is one.
    """

    status: ResultStatus
    summary: str
    data: dict[str, Any] = field(default_factory=dict)


ParamType = Literal["str", "int", "float", "bool", "path"]


@dataclass(frozen=True)
class ToolParam:
    """Declares a parameter that the tool accepts.

    Used by the CLI to build argparse arguments.

    Attributes:
        name: Parameter name (used as CLI flag --name and settings key).
        description: Help text.
        type: Python type name: "str", "int", "float", "bool", or "path".
        required: Whether the parameter must be provided.
        default: Default value if not required.
        choices: Optional list of allowed values.
    """

    name: str
    description: str
    type: ParamType = "str"
    required: bool = False
    default: Any = None
    choices: list[str] | None = None


@runtime_checkable
class ToolPlugin(Protocol):
    """Protocol a FORGE tool implements."""

    name: str
    description: str
    version: str

    def get_params(self) -> list[ToolParam]:
        """Declare the parameters this tool accepts."""
        ...

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        """Execute the tool.

        Args:
            args: Dictionary of parameter values. Keys match ToolParam.name
                  with hyphens replaced by underscores.
            ctx: Execution context providing config, progress reporting,
                 and cancellation.
        """
        ...
