"""
Shell command execution for the execute_bash tool.

Commands run through the platform shell in the session directory. Output
goes to temporary files rather than pipes so chatty commands cannot fill a
pipe buffer and stall. While the command runs, the session cancellation
signal and the timeout are polled; either one terminates the process
(gracefully first, then killed).

Result text is stdout, then ``[STDERR]`` and stderr when stderr is
non-empty, then an ``[EXIT CODE]`` line for non-zero exits. Long output keeps
its tail, since errors usually come last.
"""

import os
import subprocess
import tempfile
import time
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from keel import config
from keel.debug_logger import get_logger
from keel.tools.errors import (
    ToolCancelledError,
    ToolExecutionError,
    ToolTimeoutError,
    ToolValidationError,
    timeout_error,
)

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import CancellationSignal, Session


def _terminate(proc: subprocess.Popen) -> None:
    """Terminate gracefully, then kill if the process ignores it."""
    try:
        proc.terminate()
        try:
            proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
    except OSError:
        # Process already exited between poll() and terminate()
        pass


def _wait_with_cancellation(
    proc: subprocess.Popen,
    timeout: float,
    cancellation: Optional["CancellationSignal"],
) -> str:
    """Poll until exit; return "done", "cancelled" or "timeout"."""
    start_time = time.time()
    poll_interval = config.BASH_POLL_INTERVAL

    while True:
        if proc.poll() is not None:
            return "done"

        if cancellation is not None and cancellation.cancelled:
            _terminate(proc)
            return "cancelled"

        if time.time() - start_time > timeout:
            proc.kill()
            proc.wait()
            return "timeout"

        time.sleep(poll_interval)


def _read_back(handle) -> str:
    handle.flush()
    handle.seek(0)
    return handle.read()


def truncate_output(output: str, limit: int) -> str:
    if limit < 1 or len(output) <= limit:
        return output
    dropped = len(output) - limit
    return f"...[truncated {dropped} characters]...\n" + output[-limit:]


def format_command_output(stdout: str, stderr: str, returncode: int) -> str:
    output = stdout or ""
    if stderr:
        output += "\n[STDERR]\n" + stderr
    if returncode != 0:
        output += f"\n[EXIT CODE] {returncode}"
    return output if output.strip() else "(no output)"


def run_shell_command(
    command: str,
    *,
    cwd: Optional[os.PathLike] = None,
    timeout: Optional[float] = None,
    cancellation: Optional["CancellationSignal"] = None,
) -> Tuple[str, str, int]:
    """Run ``command`` through the shell and return (stdout, stderr, returncode).

    Raises:
        ToolCancelledError: the cancellation signal was raised mid-run
        ToolTimeoutError: the command exceeded ``timeout`` seconds
        ToolExecutionError: the shell could not be started
    """
    if timeout is None:
        timeout = config.BASH_TIMEOUT_SECONDS
    if cwd is None:
        cwd = config.ROOT

    logger = get_logger()
    stdout_file = tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace")
    stderr_file = tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace")
    try:
        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=stdout_file,
                stderr=stderr_file,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ToolExecutionError(f"Failed to start command: {e}", context={"command": command}) from e

        outcome = _wait_with_cancellation(proc, timeout, cancellation)
        stdout_data = _read_back(stdout_file)
        stderr_data = _read_back(stderr_file)
    finally:
        stdout_file.close()
        stderr_file.close()

    logger.log("command_runner", "COMMAND_FINISHED", {
        "command": command[:200],
        "outcome": outcome,
        "rc": proc.returncode,
        "stdout_len": len(stdout_data),
        "stderr_len": len(stderr_data),
    }, "DEBUG")

    if outcome == "cancelled":
        raise ToolCancelledError(f"Command cancelled by user: {command}", context={"command": command})
    if outcome == "timeout":
        raise ToolTimeoutError(
            timeout_error(command, timeout).message,
            context={"command": command, "timeout": timeout},
        )
    return stdout_data, stderr_data, proc.returncode


def execute_bash(args: Dict[str, Any], session: "Session") -> str:
    """Tool handler: run ``command`` and return merged output."""
    command = args.get("command")
    if not isinstance(command, str) or not command.strip():
        raise ToolValidationError("command is required")

    timeout = args.get("timeout", config.BASH_TIMEOUT_SECONDS)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError) as e:
        raise ToolValidationError(f"Invalid timeout: {timeout}") from e
    if timeout <= 0:
        raise ToolValidationError(f"Invalid timeout: {timeout}")

    stdout, stderr, returncode = run_shell_command(
        command,
        cwd=session.cwd,
        timeout=timeout,
        cancellation=session.cancellation,
    )
    return truncate_output(format_command_output(stdout, stderr, returncode), config.BASH_OUTPUT_LIMIT)


def validate_execute_bash(args: Dict[str, Any], session: "Session") -> Optional[str]:
    command = args.get("command")
    if not isinstance(command, str) or not command.strip():
        return "command is required"
    return None
