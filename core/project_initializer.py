#!/usr/bin/env python3
"""
Project initializer: creates an empty foundry project for a clone.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from core.errors import LayoutError
from core.foundry_integration import FoundryIntegration

logger = logging.getLogger(__name__)

# sample files forge init scaffolds; a clone only wants the fetched sources
EXAMPLE_FILES = (
    'src/Counter.sol',
    'test/Counter.t.sol',
    'script/Counter.s.sol',
)


@dataclass(frozen=True)
class InstallOptions:
    """Dependency-install policy passed to ``forge init``."""
    no_git: bool = False
    shallow: bool = False
    commit: bool = False

    def to_args(self) -> List[str]:
        args = []
        if self.no_git:
            args.append('--no-git')
        if self.shallow:
            args.append('--shallow')
        if self.commit:
            args.append('--commit')
        return args


class ProjectInitializer:
    """Run ``forge init`` and strip its example sources."""

    def __init__(self, foundry: Optional[FoundryIntegration] = None):
        self.foundry = foundry or FoundryIntegration()

    def init_empty_project(self, root: Path, install: InstallOptions) -> None:
        root = Path(root)
        root.mkdir(parents=True, exist_ok=True)
        try:
            result = self.foundry.run_forge(['init', str(root), *install.to_args()], cwd=root)
        except FileNotFoundError:
            raise LayoutError(f"Project init error: forge not found ({self.foundry.foundry_path})")
        except subprocess.TimeoutExpired:
            raise LayoutError("Project init error: forge init timed out")
        if result.returncode != 0:
            raise LayoutError(f"Project init error: {(result.stderr or result.stdout).strip()}")

        for relative in EXAMPLE_FILES:
            example = root / relative
            if example.exists():
                example.unlink()
            else:
                logger.debug("Example file %s not present", example)
        logger.info("Initialized empty project at %s", root)
