"""
Command execution utilities.

This module provides functions for executing short system commands, building
workload command lines from templates and checking for system dependencies.
"""

import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


def run_command(
    command: str, cwd: Optional[Path] = None, timeout: Optional[float] = None
) -> Tuple[int, str, str]:
    """Execute a command and capture its output.

    Args:
        command: The command string to execute, split with shlex.
        cwd: Working directory for the command (default: current directory).
        timeout: Seconds after which the command is abandoned.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors.
    """
    logger.debug(f"Executing command: '{command}' in '{cwd or Path.cwd()}'")
    try:
        process = subprocess.run(
            shlex.split(command),
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        error_msg = f"Command not found: {shlex.split(command)[0]}"
        logger.error(f"{error_msg}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{shlex.split(command)[0]}'"
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: '{command[:50]}'")
        return -1, "", f"Error: timed out after {timeout}s"
    except Exception as e:
        error_msg = f"Unexpected error while running command '{command[:50]}...'"
        logger.error(f"{error_msg}: {type(e).__name__}: {e}", exc_info=True)
        return -1, "", f"An unexpected error occurred: {e}"


def build_workload_command(template: str, fields: Dict[str, Any]) -> List[str]:
    """Fill a workload command template and split it into argv.

    Boolean fields are substituted as ``1``/``0`` so they can be passed
    straight to command-line flags. Values are shell-quoted so a path with
    spaces stays a single argument.

    Examples:
        >>> build_workload_command("camera --fps {fps} -o {output}", {"fps": 30, "output": "a.mp4"})
        ['camera', '--fps', '30', '-o', 'a.mp4']

    Raises:
        KeyError: If the template references a field that was not supplied.
    """
    rendered = {
        key: shlex.quote(str(int(value) if isinstance(value, bool) else value))
        for key, value in fields.items()
    }
    command = template.format(**rendered)
    return shlex.split(command)


def check_tool_installed(tool: str) -> bool:
    """Check if an executable is available on the system PATH."""
    return shutil.which(tool) is not None
