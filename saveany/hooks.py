"""Running user-configured shell hooks."""

from __future__ import annotations

import os
import subprocess

__all__ = ["run_hook"]

_IS_WINDOWS = os.name == "nt"


def run_hook(command: str) -> None:
    """Run ``command`` through the system shell, sharing this process's output.

    An empty command does nothing. A non-zero exit raises
    :class:`subprocess.CalledProcessError`.
    """
    if not command:
        return None
    argv = ["cmd.exe", "/C", command] if _IS_WINDOWS else ["sh", "-c", command]
    subprocess.run(argv, check=True)
    return None