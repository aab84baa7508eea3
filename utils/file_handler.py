"""
File and tool-environment helpers.
"""

import os
import stat
from pathlib import Path
from typing import Union


def get_tool_env() -> dict:
    """
    Get environment variables configured for external tools (forge, git).
    Ensures the Foundry install directory is on PATH.
    """
    env = os.environ.copy()

    # Add Foundry to PATH if not already there
    foundry_bin = os.path.expanduser("~/.foundry/bin")
    if os.path.exists(foundry_bin):
        path_parts = env.get('PATH', '').split(os.pathsep)
        if foundry_bin not in path_parts:
            env['PATH'] = f"{foundry_bin}{os.pathsep}{env.get('PATH', '')}"

    return env


def make_read_only(path: Union[str, Path]) -> None:
    """Clear every write bit on ``path`` so later writes fail with a permission error."""
    mode = os.stat(path).st_mode
    os.chmod(path, mode & ~(stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH))


def is_read_only(path: Union[str, Path]) -> bool:
    return not os.stat(path).st_mode & (stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH)
