#!/usr/bin/env python3
"""
Foundry build configuration document.

Wraps ``foundry.toml`` as a tomlkit document so edits keep the file's
formatting and comments. All mutations are addressed by a key path inside
the active profile (``[profile.<name>]``) and checked against an explicit
schema tree: a path the schema does not define is an error, never a new key.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import tomlkit
from tomlkit.exceptions import TOMLKitError

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

FOUNDRY_TOML = 'foundry.toml'
PROFILE_SECTION = 'profile'
DEFAULT_PROFILE = 'default'

YUL_DETAILS_SCHEMA = {
    'stackAllocation': bool,
    'optimizerSteps': str,
}

OPTIMIZER_DETAILS_SCHEMA = {
    'peephole': bool,
    'inliner': bool,
    'jumpdestRemover': bool,
    'orderLiterals': bool,
    'deduplicate': bool,
    'cse': bool,
    'constantOptimizer': bool,
    'simpleCounterForLoopUncheckedIncrement': bool,
    'yul': bool,
    'yulDetails': YUL_DETAILS_SCHEMA,
}

PROFILE_SCHEMA: Dict[str, Any] = {
    'src': str,
    'test': str,
    'script': str,
    'out': str,
    'libs': list,
    'remappings': list,
    'auto_detect_remappings': bool,
    'chain_id': int,
    'auto_detect_solc': bool,
    'solc_version': str,
    'evm_version': str,
    'via_ir': bool,
    'cbor_metadata': bool,
    'use_literal_content': bool,
    'bytecode_hash': str,
    'optimizer': bool,
    'optimizer_runs': int,
    'optimizer_details': OPTIMIZER_DETAILS_SCHEMA,
    'libraries': list,
    'extra_output': list,
}

KeyPath = Union[str, Sequence[str]]


def active_profile() -> str:
    """The profile foundry itself would use: ``FOUNDRY_PROFILE`` or ``default``."""
    return os.environ.get('FOUNDRY_PROFILE') or DEFAULT_PROFILE


def _split(path: KeyPath) -> List[str]:
    if isinstance(path, str):
        return path.split('.')
    return list(path)


def _unwrap(value: Any) -> Any:
    return value.unwrap() if hasattr(value, 'unwrap') else value


@dataclass(frozen=True)
class ProjectPaths:
    """Absolute layout of a foundry project."""
    root: Path
    sources: Path
    libraries: Path
    artifacts: Path


class FoundryConfigDocument:
    """Schema-checked view of one profile inside ``foundry.toml``."""

    def __init__(self, root: Union[str, Path], document: Optional[tomlkit.TOMLDocument] = None,
                 profile: Optional[str] = None):
        self.root = Path(root)
        self.path = self.root / FOUNDRY_TOML
        self.document = document if document is not None else tomlkit.document()
        self.profile = profile or active_profile()
        self._ensure_profile()

    @classmethod
    def load(cls, root: Union[str, Path], profile: Optional[str] = None) -> 'FoundryConfigDocument':
        """Parse ``<root>/foundry.toml``; a missing file yields an empty document."""
        path = Path(root) / FOUNDRY_TOML
        if path.exists():
            try:
                document = tomlkit.parse(path.read_text(encoding='utf-8'))
            except TOMLKitError as e:
                raise ConfigurationError(f"Cannot parse {path}: {e}") from e
        else:
            logger.debug("No %s in %s, starting from an empty document", FOUNDRY_TOML, root)
            document = tomlkit.document()
        return cls(root, document, profile)

    def save(self) -> None:
        self.path.write_text(self.dumps(), encoding='utf-8')
        logger.debug("Wrote %s", self.path)

    def dumps(self) -> str:
        return tomlkit.dumps(self.document)

    def _ensure_profile(self) -> None:
        if PROFILE_SECTION not in self.document:
            self.document.add(PROFILE_SECTION, tomlkit.table(is_super_table=True))
        profiles = self.document[PROFILE_SECTION]
        if self.profile not in profiles:
            profiles.add(self.profile, tomlkit.table())

    @property
    def section(self):
        return self.document[PROFILE_SECTION][self.profile]

    def _schema_for(self, keys: List[str]) -> Any:
        node: Any = PROFILE_SCHEMA
        for depth, key in enumerate(keys):
            if not isinstance(node, dict) or key not in node:
                raise ConfigurationError(
                    f"Unknown configuration key: {PROFILE_SECTION}.{self.profile}.{'.'.join(keys[:depth + 1])}"
                )
            node = node[key]
        return node

    def _parent(self, keys: List[str]):
        table = self.section
        for depth, key in enumerate(keys[:-1]):
            if key not in table:
                raise ConfigurationError(
                    f"Cannot find the key: {PROFILE_SECTION}.{self.profile}.{'.'.join(keys[:depth + 1])}"
                )
            table = table[key]
        return table

    def set(self, path: KeyPath, value: Any) -> None:
        """Overwrite a scalar or array field at ``path``."""
        keys = _split(path)
        expected = self._schema_for(keys)
        if isinstance(expected, dict):
            raise ConfigurationError(f"{'.'.join(keys)} is a table, not a value")
        if expected is int and isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigurationError(
                f"Invalid value for {'.'.join(keys)}: expected {expected.__name__}, got {type(value).__name__}"
            )

        if isinstance(value, list):
            item = tomlkit.array()
            item.extend(value)
            if len(value) > 1:
                item.multiline(True)
            value = item
        self._parent(keys)[keys[-1]] = value

    def set_table(self, path: KeyPath) -> None:
        """Replace the sub-table at ``path`` with an empty one."""
        keys = _split(path)
        if not isinstance(self._schema_for(keys), dict):
            raise ConfigurationError(f"{'.'.join(keys)} is a value, not a table")
        self._parent(keys)[keys[-1]] = tomlkit.table()

    def get(self, path: KeyPath, default: Any = None) -> Any:
        keys = _split(path)
        self._schema_for(keys)
        node = self.section
        for key in keys:
            if key not in node:
                return default
            node = node[key]
        return _unwrap(node)

    def has(self, path: KeyPath) -> bool:
        return self.get(path, _MISSING) is not _MISSING

    def remove(self, path: KeyPath) -> bool:
        """Drop ``path`` from the profile; returns whether it was present."""
        keys = _split(path)
        self._schema_for(keys)
        try:
            parent = self._parent(keys)
        except ConfigurationError:
            return False
        if keys[-1] not in parent:
            return False
        del parent[keys[-1]]
        return True

    def project_paths(self) -> ProjectPaths:
        libs = self.get('libs') or ['lib']
        return ProjectPaths(
            root=self.root,
            sources=self.root / self.get('src', 'src'),
            libraries=self.root / libs[0],
            artifacts=self.root / self.get('out', 'out'),
        )


_MISSING = object()
