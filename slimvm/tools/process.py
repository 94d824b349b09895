"""External process runner.

This module handles:
- Executing external tools with list arguments (never through a shell)
- Capturing output so a failing tool's diagnostics surface verbatim
- Optional timeouts
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

from slimvm.errors import TOOL_TIMEOUT, ToolExecutionError

logger = logging.getLogger(__name__)


def run_tool(
    cmd: list[str],
    cwd: Path | None = None,
    timeout: int | None = None,
) -> str:
    """Run an external tool and return its combined output.

    Args:
        cmd: Command as a list of strings.
        cwd: Working directory for the tool.
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        The tool's stdout and stderr.

    Raises:
        ToolExecutionError: If the tool cannot be started, times out, or
            exits non-zero.
    """
    cmd_str = shlex.join(cmd)
    logger.info("Executing: %s", cmd_str)
    if cwd is not None:
        logger.debug("Working directory: %s", cwd)

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise ToolExecutionError(
            f"{cmd[0]} timed out after {timeout} seconds",
            exit_code=-1,
            code=TOOL_TIMEOUT,
        ) from e
    except OSError as e:
        raise ToolExecutionError(f"Failed to execute {cmd[0]}: {e}") from e

    output = result.stdout or ""
    if output:
        logger.debug("%s output:\n%s", cmd[0], output.rstrip())

    if result.returncode != 0:
        raise ToolExecutionError(
            f"{cmd[0]} failed with exit code {result.returncode}:\n{output}".rstrip(),
            exit_code=result.returncode,
            output=output,
        )

    return output


__all__ = ["run_tool"]
