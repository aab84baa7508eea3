#!/usr/bin/env python3
"""
Remapping Reconciler

Builds the final, ordered remapping table for a cloned project from three
sources, in this order:

1. remappings the project declared before cloning
2. remappings generated while materializing sources
3. remappings declared in the explorer's compiler settings

The table is append-only. Later entries may shadow earlier ones with the
same alias; the compiler resolves that, so nothing is deduplicated here.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Union

from core.errors import ConfigurationError
from core.foundry_config import ProjectPaths
from core.remapping import Remapping
from core.source_materializer import SCOPE_MARKER, SRC_LIKE_DIRS, WELL_KNOWN_LIB_DIRS

logger = logging.getLogger(__name__)


class RemappingReconciler:
    """Merge remappings into one root-relative table."""

    def __init__(self, paths: ProjectPaths):
        self.paths = paths
        self.sources_name = paths.sources.relative_to(paths.root).as_posix()
        self.libraries_name = paths.libraries.relative_to(paths.root).as_posix()

    def rewrite_metadata_path(self, path: str) -> str:
        """Apply the reorganization's directory moves to an explorer-declared path."""
        head, sep, rest = path.partition('/')
        if head in SRC_LIKE_DIRS:
            return f"{self.sources_name}{sep}{rest}"
        if head.startswith(SCOPE_MARKER) or (sep and head in WELL_KNOWN_LIB_DIRS):
            return f"{self.libraries_name}/{path}"
        return path

    def reconcile(self,
                  existing: Iterable[Remapping],
                  generated: Iterable[Remapping],
                  declared: Iterable[Union[str, Remapping]],
                  reorganized: bool) -> List[Remapping]:
        table: List[Remapping] = list(existing)
        table.extend(generated)

        for entry in declared:
            try:
                remapping = entry if isinstance(entry, Remapping) else Remapping.parse(entry)
            except ValueError as e:
                raise ConfigurationError(f"Explorer-declared remapping rejected: {e}") from e
            if reorganized:
                remapping = replace(remapping, path=self.rewrite_metadata_path(remapping.path))
            table.append(remapping)

        relative = [r.into_relative(self.paths.root) for r in table]
        logger.debug("Reconciled %d remappings", len(relative))
        return relative
