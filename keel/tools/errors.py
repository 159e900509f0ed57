#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error taxonomy for tool execution.

Every failure a tool call can hit maps to one ToolErrorType. Exceptions
raised by handlers, the mode gate and the executor carry that type so the
executor can fold them into a tool result the model can react to. Only
RegistryNotInitializedError is allowed to escape the executor.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ToolErrorType(Enum):
    """Categories for tool execution failures.

    - VALIDATION_ERROR: malformed or missing arguments, caught before any I/O
    - NOT_FOUND: unknown tool name or missing target file
    - STATE_ERROR: operation disallowed in the current mode
    - EXECUTION_ERROR: handler failed while doing the actual work
    - CANCELLED: user declined confirmation or raised the cancellation signal
    - TIMEOUT: command took too long
    - NETWORK: fetch or connection failure
    - PERMISSION_DENIED: the OS refused access
    - UNKNOWN: fallback for unclassified errors
    """

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    STATE_ERROR = "state_error"
    EXECUTION_ERROR = "execution_error"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    NETWORK = "network"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"

    @property
    def recoverable_by_agent(self) -> bool:
        """Whether the model can fix the call without user help."""
        return self not in (
            ToolErrorType.STATE_ERROR,
            ToolErrorType.CANCELLED,
            ToolErrorType.PERMISSION_DENIED,
            ToolErrorType.UNKNOWN,
        )


class KeelToolError(Exception):
    """Base class for errors that round-trip into a tool result."""

    error_type: ToolErrorType = ToolErrorType.UNKNOWN

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_tool_error(self, tool_name: str = "tool") -> "ToolError":
        return ToolError(
            error_type=self.error_type,
            message=self.message,
            context={"tool": tool_name, **self.context},
            recoverable=self.error_type.recoverable_by_agent,
            suggested_recovery=_suggested_recovery(self.error_type),
            original_error=self.message,
        )


class ToolValidationError(KeelToolError):
    """Malformed or missing arguments."""

    error_type = ToolErrorType.VALIDATION_ERROR


class ToolNotFoundError(KeelToolError):
    """Unknown tool or missing target file."""

    error_type = ToolErrorType.NOT_FOUND


class ToolStateError(KeelToolError):
    """Operation disallowed in the current mode."""

    error_type = ToolErrorType.STATE_ERROR


class ToolExecutionError(KeelToolError):
    """Handler failed during execution."""

    error_type = ToolErrorType.EXECUTION_ERROR


class ToolTimeoutError(ToolExecutionError):
    """Command exceeded its time limit."""

    error_type = ToolErrorType.TIMEOUT


class ToolNetworkError(ToolExecutionError):
    """Fetch or connection failure."""

    error_type = ToolErrorType.NETWORK


class ToolCancelledError(KeelToolError):
    """The user declined or cancelled; halts the rest of the batch."""

    error_type = ToolErrorType.CANCELLED


class RegistryNotInitializedError(RuntimeError):
    """The executor was asked to run without a tool registry.

    This is a programming error and is never converted into a tool result.
    """


@dataclass
class ToolError:
    """A tool failure in the form the executor reports back to the model."""

    error_type: ToolErrorType
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    recoverable: bool = True
    suggested_recovery: List[str] = field(default_factory=list)
    original_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["error_type"] = self.error_type.value
        data["error"] = data.pop("message")
        return data

    def to_content(self) -> str:
        """Render as the text placed in a tool result."""
        return f"Error: {self.message}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolError":
        """Inverse of ``to_dict``. Unrecognized error types become UNKNOWN."""
        known = {member.value for member in ToolErrorType}
        raw_type = data.get("error_type")
        return cls(
            error_type=ToolErrorType(raw_type) if raw_type in known else ToolErrorType.UNKNOWN,
            message=data.get("error") or data.get("message") or "Unknown error",
            context=dict(data.get("context") or {}),
            recoverable=bool(data.get("recoverable", True)),
            suggested_recovery=list(data.get("suggested_recovery") or []),
            original_error=data.get("original_error"),
        )

    @classmethod
    def from_exception(cls, exc: Exception, tool_name: str) -> "ToolError":
        """Wrap any exception raised while running ``tool_name``."""
        if isinstance(exc, KeelToolError):
            return exc.to_tool_error(tool_name)

        error_type = next(
            (kind for exc_types, kind in _BUILTIN_EXCEPTION_TYPES if isinstance(exc, exc_types)),
            ToolErrorType.EXECUTION_ERROR,
        )
        return cls(
            error_type=error_type,
            message=str(exc) or type(exc).__name__,
            context={"tool": tool_name, "exception_type": type(exc).__name__},
            recoverable=error_type.recoverable_by_agent,
            suggested_recovery=_suggested_recovery(error_type),
            original_error=str(exc),
        )


# Checked in order; PermissionError and FileNotFoundError are both OSErrors
_BUILTIN_EXCEPTION_TYPES = (
    (FileNotFoundError, ToolErrorType.NOT_FOUND),
    (PermissionError, ToolErrorType.PERMISSION_DENIED),
    (TimeoutError, ToolErrorType.TIMEOUT),
    (ConnectionError, ToolErrorType.NETWORK),
    ((ValueError, KeyError, TypeError), ToolErrorType.VALIDATION_ERROR),
)

_RECOVERY_HINTS: Dict[ToolErrorType, List[str]] = {
    ToolErrorType.NOT_FOUND: [
        "Use list_directory to locate the missing file",
        "Check that the path is relative to the workspace root",
    ],
    ToolErrorType.VALIDATION_ERROR: [
        "Verify the tool arguments match the declared parameters",
        "Ensure all required fields are provided",
    ],
    ToolErrorType.STATE_ERROR: [
        "Call switch_mode to request a mode that allows this operation",
    ],
    ToolErrorType.TIMEOUT: [
        "Break the command into smaller steps",
        "Check whether the command is waiting for input",
    ],
    ToolErrorType.NETWORK: [
        "Check that the URL is reachable",
        "Retry after a short delay",
    ],
}


def _suggested_recovery(error_type: ToolErrorType) -> List[str]:
    return list(_RECOVERY_HINTS.get(error_type, []))


def mode_blocked_error(tool_name: str, mode: str) -> ToolError:
    """STATE_ERROR for a tool the current mode does not allow."""
    return ToolError(
        error_type=ToolErrorType.STATE_ERROR,
        message=(
            f"{tool_name} is not allowed in {mode} mode. "
            "Use switch_mode to request normal or auto-accept mode before modifying files or running commands."
        ),
        context={"tool": tool_name, "mode": mode},
        recoverable=False,
        suggested_recovery=_suggested_recovery(ToolErrorType.STATE_ERROR),
    )


def timeout_error(command: str, timeout_seconds: Optional[float] = None,
                  tool_name: str = "execute_bash") -> ToolError:
    message = f"{tool_name}: Command timed out - {command}"
    if timeout_seconds:
        message += f" (after {timeout_seconds:g}s)"
    return ToolError(
        error_type=ToolErrorType.TIMEOUT,
        message=message,
        context={"tool": tool_name, "command": command, "timeout": timeout_seconds},
        suggested_recovery=_suggested_recovery(ToolErrorType.TIMEOUT),
    )
