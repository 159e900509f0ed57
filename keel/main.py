#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Command-line entry point for keel.

Reads a model response (from a file or stdin), extracts its tool calls,
filters them and runs the batch through the mode gate and executor. Every
outcome is printed as one JSON object per line so the output can be piped
into other tooling; confirmation prompts and previews go to stderr.
"""

import argparse
import json
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from keel import config
from keel.core.conversation import MessageBuilder, describe_tool_step, filter_conversation
from keel.core.executor import ToolExecutor, create_cancellation_results
from keel.core.mode_gate import ModeGate, ModePolicy
from keel.core.session import Session
from keel.core.tool_filters import filter_valid_tool_calls
from keel.core.types import ToolCall, ToolResult
from keel.debug_logger import DebugLogger
from keel.llm.tool_call_parser import extract_tool_calls
from keel.settings_manager import (
    RUNTIME_SETTINGS,
    apply_saved_settings,
    reset_settings,
    save_settings,
    set_runtime_setting,
)
from keel.tools.builtin import build_default_registry
from keel.tools.errors import ToolCancelledError, ToolValidationError


def _emit(event: str, payload: Dict[str, Any]) -> None:
    record = {"event": event}
    record.update(payload)
    print(json.dumps(record, default=str), flush=True)


def _result_payload(result: ToolResult) -> Dict[str, Any]:
    return {
        "tool_call_id": result.tool_call_id,
        "name": result.name,
        "content": result.content,
        "is_error": result.is_error,
    }


def _make_confirm(session: Session, assume_yes: bool):
    """Build the confirmation callback handed to the executor."""

    def confirm(call: ToolCall) -> bool:
        preview = session.registry.preview(call.name, call.arguments, session)
        if preview is not None:
            print(preview.to_text(), file=sys.stderr)
        else:
            print(f"{call.name} {json.dumps(call.arguments, default=str)}", file=sys.stderr)

        if assume_yes:
            return True
        confirm.prompt_open = True
        try:
            answer = input(f"Run {call.name}? [y/N] ")
        except EOFError:
            return False
        finally:
            confirm.prompt_open = False
        return answer.strip().lower() in {"y", "yes"}

    confirm.prompt_open = False
    return confirm


def _read_input(source: Optional[str]) -> str:
    if not source or source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _load_history(path: Optional[str]) -> List[Dict[str, Any]]:
    if not path:
        return []
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("messages", [])
    if not isinstance(data, list):
        raise ValueError("History file must contain a list of messages")
    return data


def _install_interrupt_handler(session: Session, confirm=None):
    """First Ctrl+C cancels the batch; a second one aborts the process."""

    def handler(signum, frame):
        session.cancellation.cancel()
        signal.signal(signal.SIGINT, signal.default_int_handler)
        if confirm is not None and confirm.prompt_open:
            # input() resumes waiting after a handler returns
            raise ToolCancelledError("Cancelled at the confirmation prompt")

    return signal.signal(signal.SIGINT, handler)


def main():
    """Main entry point for the keel CLI."""
    parser = argparse.ArgumentParser(
        description="keel - run the tool calls found in a model response",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the tool calls in a saved response, confirming each change
  keel response.txt

  # Pipe a response through in plan mode (read-only tools only)
  cat response.txt | keel --mode plan

  # Apply every change without prompting
  keel response.txt --mode auto-accept

  # Append results to an existing conversation and print the next request
  keel response.txt --history messages.json
        """
    )

    parser.add_argument(
        "input",
        nargs="?",
        help="File holding the model response (default: stdin)"
    )
    parser.add_argument(
        "--mode",
        choices=ModeGate.available_modes(),
        help=f"Session mode (default: {config.DEFAULT_MODE})"
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Answer yes to every confirmation prompt"
    )
    parser.add_argument(
        "--policy",
        help=f"YAML mode policy file (default: {config.POLICY_FILE})"
    )
    parser.add_argument(
        "--workspace",
        help="Working directory for tool calls (default: current directory)"
    )
    parser.add_argument(
        "--history",
        help="JSON file with the conversation so far; prints the next request's messages"
    )
    parser.add_argument(
        "--list-tools",
        action="store_true",
        help="Print the registered tool declarations and exit"
    )
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a runtime setting for this run (repeatable; see --list-settings)"
    )
    parser.add_argument(
        "--list-settings",
        action="store_true",
        help="Print the runtime settings with their current values and exit"
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Persist runtime settings and the final session mode to .keel/settings.json"
    )
    parser.add_argument(
        "--reset-settings",
        action="store_true",
        help="Restore default settings, delete .keel/settings.json and exit"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to .keel/logs/"
    )
    parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        help="Show keel version information and exit",
    )

    args = parser.parse_args()

    if args.workspace:
        try:
            config.set_workspace_root(Path(args.workspace))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)

    debug_logger = DebugLogger.initialize(enabled=args.debug or config.DEBUG_ENABLED)
    if debug_logger.enabled:
        print(f"Debug logging enabled: {debug_logger.log_file_path}", file=sys.stderr)

    if args.reset_settings:
        reset_settings()
        print(f"Settings reset; removed {config.SETTINGS_FILE}", file=sys.stderr)
        sys.exit(0)

    registry = build_default_registry()
    session = Session(registry=registry, cwd=config.ROOT)
    apply_saved_settings(session)

    for assignment in args.set:
        key, _, raw_value = assignment.partition("=")
        try:
            value = set_runtime_setting(key.strip(), raw_value)
        except KeyError:
            print(f"Error: unknown setting '{key.strip()}' (see --list-settings)", file=sys.stderr)
            sys.exit(2)
        except ValueError as e:
            print(f"Error: invalid value for {key.strip()}: {e}", file=sys.stderr)
            sys.exit(2)
        if key.strip() == "default_mode":
            ModeGate.transition(session, value)

    if args.list_settings:
        print(json.dumps([
            {
                "key": setting.key,
                "section": setting.section,
                "description": setting.description,
                "value": setting.getter(),
                "default": setting.default,
            }
            for setting in RUNTIME_SETTINGS.values()
        ], indent=2))
        sys.exit(0)

    if args.version:
        from keel.versioning import build_version_output

        print(build_version_output(session.mode.value))
        sys.exit(0)

    if args.list_tools:
        print(json.dumps(registry.definitions(), indent=2))
        sys.exit(0)

    if args.mode:
        ModeGate.transition(session, args.mode)

    if args.policy:
        policy, error = ModePolicy.from_yaml(Path(args.policy))
        if error:
            print(f"Error: invalid policy file {args.policy}: {error}", file=sys.stderr)
            sys.exit(2)
    else:
        policy = ModePolicy.load_default()

    debug_logger.log("main", "CONFIGURATION", {
        "session": session.session_id,
        "mode": session.mode.value,
        "cwd": str(session.cwd),
        "tools": registry.names(),
        "assume_yes": args.yes,
    })

    exit_code = 0
    previous_handler = None
    try:
        history = _load_history(args.history)
        parsed = extract_tool_calls(_read_input(args.input), allowed_tools=registry.names())

        if not parsed.success:
            _emit("malformed_tool_call", {"error": parsed.error, "examples": parsed.examples})
            sys.exit(1)

        if parsed.cleaned_content:
            _emit("assistant_text", {"content": parsed.cleaned_content})

        filtered = filter_valid_tool_calls(parsed.tool_calls, registry)
        for error_result in filtered.errors:
            _emit("tool_result", _result_payload(error_result))

        confirm = _make_confirm(session, args.yes)
        previous_handler = _install_interrupt_handler(session, confirm)
        executor = ToolExecutor(
            session,
            confirm,
            policy=policy,
            on_result=lambda call, result: _emit("tool_result", _result_payload(result)),
        )
        batch = executor.execute(filtered.valid)

        executed = filtered.valid[:len(batch.results)]
        for record in describe_tool_step(executed, batch.results):
            debug_logger.log("main", "TOOL_STEP", {
                "id": record.tool_call_id,
                "tool": record.tool_name,
                "output": record.output[:500],
            }, "DEBUG")

        _emit("batch", {
            "completed": batch.completed,
            "cancelled": batch.cancelled,
            "pending": [call.id for call in batch.pending],
            "mode": session.mode.value,
        })
        if not batch.completed:
            exit_code = 3

        if args.history is not None:
            # Every tool_call in the assistant message needs a matching result
            results = filtered.errors + batch.results + create_cancellation_results(batch.pending)
            answered = {result.tool_call_id for result in results}
            unique_calls: List[ToolCall] = []
            for call in parsed.tool_calls:
                if call.id in answered and call.id not in {c.id for c in unique_calls}:
                    unique_calls.append(call)
            builder = MessageBuilder(history)
            builder.add_assistant_message(parsed.cleaned_content, unique_calls)
            builder.add_tool_results(results)
            messages = builder.build()
            _emit("messages", {"messages": filter_conversation(messages).get("messages", messages)})

        if args.save_settings:
            path = save_settings(session)
            print(f"Settings saved to {path}", file=sys.stderr)

    except KeyboardInterrupt:
        debug_logger.log("main", "USER_INTERRUPT", {}, "WARNING")
        print("\n\nAborted by user", file=sys.stderr)
        sys.exit(130)
    except (OSError, ValueError, ToolValidationError) as e:
        debug_logger.log_error("main", e, {"context": "main"})
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)
        debug_logger.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
