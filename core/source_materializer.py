#!/usr/bin/env python3
"""
Source Tree Materializer

Writes a fetched source bundle into a foundry project and maps its
directory layout onto the project's canonical ``src``/``lib`` layout.

Sources are first dumped into a staging directory (``raw_sources/<Contract>``).
If every top-level entry there is a directory we recognize, the tree is
reorganized: ``src``/``contracts``/``lib``/``node_modules`` are flattened into
the project's source, library and ``node_modules`` directories, while
well-known dependencies (``forge-std``, ``hardhat``) and scoped packages
(``@scope``) move into the library directory whole. Otherwise the staged
tree moves into the source directory unchanged. Each move records the
remapping that keeps the original import paths resolvable.
"""

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List

from core.contract_metadata import ContractMetadata
from core.errors import LayoutError
from core.foundry_config import ProjectPaths
from core.remapping import Remapping

logger = logging.getLogger(__name__)

STAGING_DIR = 'raw_sources'
NODE_MODULES_DIR = 'node_modules'
SCOPE_MARKER = '@'

SRC_LIKE_DIRS = frozenset({'src', 'contracts'})
LIB_LIKE_DIRS = frozenset({'lib'})
NODE_MODULES_LIKE_DIRS = frozenset({NODE_MODULES_DIR})
# Scaffolding dependencies the fetched copy replaces if the project already has them
WELL_KNOWN_LIB_DIRS = frozenset({'hardhat', 'forge-std'})


class EntryKind(Enum):
    """Classification of a top-level entry in the staged source tree."""
    SRC_LIKE = 'src-like'
    LIB_LIKE = 'lib-like'
    NODE_MODULES_LIKE = 'node_modules-like'
    SCOPED_OR_WELL_KNOWN = 'scoped-or-well-known-lib-like'
    OTHER = 'other'


def classify_entry(name: str) -> EntryKind:
    if name in SRC_LIKE_DIRS:
        return EntryKind.SRC_LIKE
    if name in LIB_LIKE_DIRS:
        return EntryKind.LIB_LIKE
    if name in NODE_MODULES_LIKE_DIRS:
        return EntryKind.NODE_MODULES_LIKE
    if name in WELL_KNOWN_LIB_DIRS or name.startswith(SCOPE_MARKER):
        return EntryKind.SCOPED_OR_WELL_KNOWN
    return EntryKind.OTHER


def should_reorganize(entry_names: Iterable[str], keep_directory_structure: bool = False) -> bool:
    """Reorganize only when allowed and every top-level entry is recognized."""
    if keep_directory_structure:
        return False
    return all(classify_entry(name) is not EntryKind.OTHER for name in entry_names)


@dataclass
class MaterializeResult:
    """Remappings generated while moving sources, in move order."""
    remappings: List[Remapping] = field(default_factory=list)
    reorganized: bool = False


class SourceMaterializer:
    """Dump a contract's sources into a project and normalize their layout."""

    def __init__(self, paths: ProjectPaths):
        self.paths = paths
        self.staging_dir = paths.root / STAGING_DIR
        self.node_modules_dir = paths.root / NODE_MODULES_DIR

    def materialize(self, metadata: ContractMetadata, keep_directory_structure: bool = False) -> MaterializeResult:
        if not self.paths.sources.is_dir():
            raise LayoutError(f"Source directory must exist: {self.paths.sources}")
        if not self.paths.libraries.is_dir():
            raise LayoutError(f"Library directory must exist: {self.paths.libraries}")
        if self.staging_dir.exists():
            raise LayoutError(f"Staging directory already exists: {self.staging_dir}")

        try:
            self.write_tree(metadata.source_tree(), self.staging_dir)
            contract_dir = self.staging_dir / metadata.contract_name
            entries = sorted(contract_dir.iterdir(), key=lambda p: p.name)

            result = MaterializeResult(
                reorganized=should_reorganize((e.name for e in entries), keep_directory_structure)
            )
            logger.info("Materializing %d top-level entries for %s (reorganize=%s)",
                        len(entries), metadata.contract_name, result.reorganized)

            for entry in entries:
                if result.reorganized:
                    self._reorganize_entry(entry, result.remappings)
                else:
                    self._move_into_sources(entry, result.remappings)
        finally:
            if self.staging_dir.exists():
                shutil.rmtree(self.staging_dir)

        return result

    @staticmethod
    def write_tree(tree: Dict[str, str], target_dir: Path) -> None:
        """Write relative path -> text entries below ``target_dir``."""
        for relative_path, content in tree.items():
            file_path = target_dir / relative_path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
        logger.debug("Wrote %d source files into %s", len(tree), target_dir)

    def _reorganize_entry(self, entry: Path, remappings: List[Remapping]) -> None:
        kind = classify_entry(entry.name)

        if kind in (EntryKind.SRC_LIKE, EntryKind.LIB_LIKE, EntryKind.NODE_MODULES_LIKE):
            if kind is EntryKind.LIB_LIKE:
                new_dir = self.paths.libraries
            elif kind is EntryKind.NODE_MODULES_LIKE:
                try:
                    self.node_modules_dir.mkdir()
                except FileExistsError:
                    raise LayoutError(f"Destination already exists: {self.node_modules_dir}")
                new_dir = self.node_modules_dir
            else:
                new_dir = self.paths.sources

            for child in sorted(entry.iterdir(), key=lambda p: p.name):
                dest = new_dir / child.name
                self._move(child, dest)
                remappings.append(Remapping(context=None, name=f"{entry.name}/{child.name}", path=str(dest)))
            return

        # scoped packages and well-known dependencies move whole into lib
        dest = self.paths.libraries / entry.name
        if entry.name in WELL_KNOWN_LIB_DIRS and dest.exists():
            logger.info("Replacing existing %s with the fetched copy", dest)
            shutil.rmtree(dest)
        self._move(entry, dest)
        remappings.append(Remapping(context=None, name=entry.name, path=str(dest)))

    def _move_into_sources(self, entry: Path, remappings: List[Remapping]) -> None:
        dest = self.paths.sources / entry.name
        self._move(entry, dest)
        if entry.name != self.paths.sources.name:
            remappings.append(Remapping(context=None, name=entry.name, path=str(dest)))

    @staticmethod
    def _move(source: Path, dest: Path) -> None:
        if dest.exists() or dest.is_symlink():
            raise LayoutError(f"Destination already exists: {dest}")
        shutil.move(str(source), str(dest))
