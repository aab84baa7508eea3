#!/usr/bin/env python3
"""
Git helper used to snapshot a freshly cloned project.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable, Optional, Sequence

from core.errors import VersionControlError
from utils.file_handler import get_tool_env

logger = logging.getLogger(__name__)


class GitClient:
    """Stage and commit everything under a project root."""

    def __init__(self, root: Path, runner: Optional[Callable[..., str]] = None, git_path: str = 'git'):
        self.root = Path(root)
        self.git_path = git_path
        self._runner = runner or self._default_runner

    def stage_all(self) -> None:
        self._run(['add', '--all'])

    def commit(self, message: str) -> None:
        self._run(['commit', '-m', message])

    def _run(self, args: Sequence[str]) -> str:
        cmd = [self.git_path, *args]
        logger.debug("Running %s in %s", ' '.join(cmd), self.root)
        try:
            return self._runner(cmd, cwd=self.root)
        except (OSError, subprocess.CalledProcessError) as e:
            raise VersionControlError(f"git {' '.join(args)} failed: {e}")

    @staticmethod
    def _default_runner(cmd: Sequence[str], cwd: Path) -> str:
        completed = subprocess.run(
            list(cmd),
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
            env=get_tool_env(),
        )
        return completed.stdout
