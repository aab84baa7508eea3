#!/usr/bin/env python3
"""
Storage layout compatibility check for cloned projects.

Recompiles a clone and compares the target contract's current storage
layout with the fingerprint recorded in ``.clone.meta``. Existing slots must
keep their slot, offset, name and type; new variables may only be appended.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.clone_metadata import CloneMetadata
from core.errors import CompilationError
from core.foundry_integration import FoundryIntegration, find_main_contract

logger = logging.getLogger(__name__)


@dataclass
class LayoutCheckResult:
    contract: str
    differences: List[str] = field(default_factory=list)

    @property
    def compatible(self) -> bool:
        return not self.differences


def _type_label(layout: Dict[str, Any], type_id: str) -> str:
    info = (layout.get('types') or {}).get(type_id) or {}
    return f"{info.get('label', type_id)}({info.get('numberOfBytes', '?')})"


def compare_storage_layouts(original: Dict[str, Any], current: Dict[str, Any]) -> List[str]:
    """Describe every way ``current`` breaks the slots of ``original``."""
    differences = []
    old_storage = original.get('storage') or []
    new_storage = current.get('storage') or []

    for index, old in enumerate(old_storage):
        if index >= len(new_storage):
            differences.append(f"slot {old.get('slot')}: variable '{old.get('label')}' was removed")
            continue
        new = new_storage[index]
        old_view = (old.get('slot'), old.get('offset'), old.get('label'), _type_label(original, old.get('type')))
        new_view = (new.get('slot'), new.get('offset'), new.get('label'), _type_label(current, new.get('type')))
        if old_view != new_view:
            differences.append(
                f"slot {old_view[0]} offset {old_view[1]}: "
                f"{old_view[2]} {old_view[3]} -> {new_view[2]} {new_view[3]} "
                f"(now slot {new_view[0]} offset {new_view[1]})"
            )
    return differences


class StorageLayoutChecker:
    """Compare a clone's current storage layout against its clone record."""

    def __init__(self, foundry: Optional[FoundryIntegration] = None):
        self.foundry = foundry or FoundryIntegration()

    def check(self, root: Path) -> LayoutCheckResult:
        root = Path(root)
        record = CloneMetadata.load(root)
        output = self.foundry.compile_project(root)
        artifact = find_main_contract(output, record.target_contract)
        if artifact.storage_layout is None:
            raise CompilationError(f"Storage layout not found in the artifact of {record.target_contract}")

        differences = compare_storage_layouts(record.storage_layout, artifact.storage_layout)
        logger.info("Storage layout check for %s: %d differences", record.target_contract, len(differences))
        return LayoutCheckResult(contract=record.target_contract, differences=differences)
