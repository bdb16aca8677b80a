"""Subprocess execution utilities.

Every container CLI invocation goes through these two helpers so the command
line and its output end up in the same place when something fails.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from server_styles.exceptions import RuntimeCommandError

logger = logging.getLogger(__name__)


def run_cmd(cmd: list[str], cwd: Path | None = None) -> str:
    """Run a command and return its combined stdout/stderr output.

    Args:
        cmd: Command and arguments as a list of strings.
        cwd: Optional working directory for the command.

    Returns:
        The output of the command decoded as UTF-8.

    Raises:
        RuntimeCommandError: If the command exits with non-zero status or the
            executable cannot be found.

    Example:
        >>> run_cmd(["docker", "start", "nextcloud-server-styles-28_0"])
        'nextcloud-server-styles-28_0\\n'
    """
    returncode, output = probe_cmd(cmd, cwd=cwd)
    if returncode != 0:
        raise RuntimeCommandError(
            f"Command failed with exit code {returncode}: {' '.join(cmd)}",
            cmd=cmd,
            returncode=returncode,
            output=output.strip(),
        )
    return output


def probe_cmd(cmd: list[str], cwd: Path | None = None) -> tuple[int, str]:
    """Run a command without raising on a non-zero exit.

    Used for queries whose failure is an answer (``docker inspect`` of a
    container that does not exist).
    """
    logger.debug("$ %s", " ".join(cmd))
    try:
        p = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except FileNotFoundError as exc:
        raise RuntimeCommandError(
            f"Executable not found: {cmd[0]}",
            cmd=cmd,
            returncode=127,
            output=str(exc),
        ) from exc
    return p.returncode, p.stdout.decode("utf-8", errors="ignore")
