#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Sequential execution of a validated batch of tool calls.

Each call goes through the mode gate, the tool's argument validator, user
confirmation when the gate asks for it, and finally the registry handler.
Every outcome becomes a ToolResult keyed by the call id, so the model always
sees what happened. A declined confirmation or a raised cancellation signal
stops the batch; calls that never ran are reported in ``BatchResult.pending``.
Edits already applied by earlier calls in the batch stay applied.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from keel.core.mode_gate import ModeGate, ModePolicy
from keel.core.session import Session
from keel.core.types import BatchResult, ToolCall, ToolResult
from keel.debug_logger import get_logger
from keel.tools.errors import (
    KeelToolError,
    RegistryNotInitializedError,
    ToolCancelledError,
    ToolError,
)

CANCELLED_MESSAGE = "Tool execution was cancelled by the user."

ConfirmFn = Callable[[ToolCall], bool]
ResultHook = Callable[[ToolCall, ToolResult], None]


def create_cancellation_results(calls: Iterable[ToolCall]) -> List[ToolResult]:
    """Results for calls that never ran, keeping tool_call_id pairing intact."""
    return [ToolResult.error(call, CANCELLED_MESSAGE) for call in calls]


class ToolExecutor:
    """Drives one batch at a time against ``session.registry``."""

    def __init__(
        self,
        session: Session,
        confirm: ConfirmFn,
        *,
        policy: Optional[ModePolicy] = None,
        on_result: Optional[ResultHook] = None,
    ):
        self.session = session
        self.confirm = confirm
        self.policy = policy or ModePolicy()
        self.on_result = on_result
        self.logger = get_logger()

    def execute(self, batch: List[ToolCall]) -> BatchResult:
        registry = self.session.registry
        if registry is None:
            raise RegistryNotInitializedError("Tool registry has not been initialized for this session")

        gate = ModeGate(registry, self.policy)
        results: List[ToolResult] = []

        self.logger.log("executor", "BATCH_START", {
            "session": self.session.session_id,
            "mode": self.session.mode.value,
            "calls": [call.name for call in batch],
        }, "DEBUG")

        for index, call in enumerate(batch):
            if self.session.cancellation.cancelled:
                return self._stop(results, batch[index:], "CANCELLED_BEFORE_CALL")

            decision = gate.decide(call.name, self.session.mode)
            if decision.blocked:
                self.logger.log("executor", "CALL_BLOCKED", {
                    "tool": call.name,
                    "mode": self.session.mode.value,
                }, "DEBUG")
                self._append(results, call, ToolResult.error(call, f"Error: {decision.reason}"))
                continue

            validation_error = self._validate(call)
            if validation_error is not None:
                self._append(results, call, validation_error)
                continue

            if decision.requires_confirmation and not self._confirmed(call):
                return self._stop(results, batch[index:], "CALL_DECLINED")

            try:
                output = registry.invoke(call.name, call.arguments, self.session)
            except RegistryNotInitializedError:
                raise
            except ToolCancelledError:
                self._append(results, call, ToolResult.error(call, CANCELLED_MESSAGE))
                return self._stop(results, batch[index + 1:], "CALL_CANCELLED")
            except Exception as e:
                self.logger.log_error("executor", e, {"tool": call.name, "id": call.id})
                error = ToolError.from_exception(e, call.name)
                self._append(results, call, ToolResult.error(call, error.to_content()))
                continue

            self._append(results, call, ToolResult(tool_call_id=call.id, name=call.name, content=output))

        self.logger.log("executor", "BATCH_COMPLETE", {"results": len(results)}, "DEBUG")
        # A signal raised while the last call finished has nothing left to stop
        self.session.cancellation.clear()
        return BatchResult(completed=True, results=results)

    def _validate(self, call: ToolCall) -> Optional[ToolResult]:
        try:
            message = self.session.registry.validate(call.name, call.arguments, self.session)
        except KeelToolError as e:
            return ToolResult.error(call, e.to_tool_error(call.name).to_content())
        except Exception as e:
            return ToolResult.error(call, ToolError.from_exception(e, call.name).to_content())
        if message:
            return ToolResult.error(call, f"Error: {message}")
        return None

    def _confirmed(self, call: ToolCall) -> bool:
        try:
            approved = bool(self.confirm(call))
        except ToolCancelledError:
            return False
        # The signal may be raised while the prompt is open
        return approved and not self.session.cancellation.cancelled

    def _append(self, results: List[ToolResult], call: ToolCall, result: ToolResult) -> None:
        results.append(result)
        if self.on_result is not None:
            self.on_result(call, result)

    def _stop(self, results: List[ToolResult], pending: List[ToolCall], event: str) -> BatchResult:
        self.logger.log("executor", event, {
            "completed_results": len(results),
            "pending": [call.id for call in pending],
        })
        # Cancellation is scoped to this batch; the next one starts fresh
        self.session.cancellation.clear()
        return BatchResult(completed=False, results=results, cancelled=True, pending=list(pending))
