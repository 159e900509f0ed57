"""The switch_mode tool: the model's only way to change the session mode."""

from typing import TYPE_CHECKING, Any, Dict, Optional

from keel.core.mode_gate import ModeGate
from keel.core.types import Mode

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import Session


def switch_mode(args: Dict[str, Any], session: "Session") -> str:
    previous = ModeGate.transition(session, args.get("mode"))
    if previous == session.mode:
        return f"Already in {session.mode.value} mode."
    return f"Switched from {previous.value} mode to {session.mode.value} mode."


def validate_switch_mode(args: Dict[str, Any], session: "Session") -> Optional[str]:
    try:
        Mode.parse(args.get("mode"))
    except ValueError as e:
        return str(e)
    return None
