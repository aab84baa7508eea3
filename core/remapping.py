#!/usr/bin/env python3
"""
Import remappings.

A remapping binds an import prefix (optionally scoped to a context) to a
filesystem path, e.g. ``@openzeppelin/=lib/@openzeppelin/``. Remappings are
collected with absolute paths while sources are moved around and rendered
relative to the project root once the layout is final.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, List, Optional, Union

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

REMAPPINGS_TXT = 'remappings.txt'


def _with_trailing_slash(value: str) -> str:
    """Directory remappings end with '/', single-file remappings keep their name."""
    if not value or value.endswith('/') or value.endswith('.sol'):
        return value
    return value + '/'


def _relative_to(value: str, root: Path) -> str:
    path = Path(value)
    if not path.is_absolute():
        return value
    try:
        relative = path.relative_to(root).as_posix()
    except ValueError:
        return value
    if value.endswith('/') and not relative.endswith('/'):
        relative += '/'
    return relative


@dataclass(frozen=True)
class Remapping:
    """An import alias bound to a filesystem path."""
    context: Optional[str]
    name: str
    path: str

    @classmethod
    def parse(cls, text: str) -> 'Remapping':
        """Parse ``[context:]name=path``."""
        left, sep, path = text.strip().partition('=')
        if not sep or not left:
            raise ValueError(f"Invalid remapping: {text!r}")
        context = None
        if ':' in left:
            context, left = left.split(':', 1)
            context = context or None
        if not left:
            raise ValueError(f"Invalid remapping: {text!r}")
        return cls(context=context, name=left, path=path)

    @property
    def rendered_name(self) -> str:
        return _with_trailing_slash(self.name)

    @property
    def rendered_path(self) -> str:
        return _with_trailing_slash(self.path)

    def __str__(self) -> str:
        prefix = f"{self.context}:" if self.context else ''
        return f"{prefix}{self.rendered_name}={self.rendered_path}"

    def into_relative(self, root: Union[str, Path]) -> 'Remapping':
        """Return a copy whose path (and context) are relative to ``root``."""
        root = Path(root)
        context = _relative_to(self.context, root) if self.context else None
        return replace(self, context=context, path=_relative_to(self.path, root))


def resolve_import(import_path: str, remappings: Iterable[Remapping],
                   importer: Optional[str] = None) -> str:
    """Rewrite an import path with the longest matching remapping.

    On equal prefix length the later remapping wins, so later entries shadow
    earlier ones with the same alias.
    """
    best: Optional[Remapping] = None
    best_len = -1
    for remapping in remappings:
        if remapping.context and (importer is None or not importer.startswith(remapping.context)):
            continue
        prefix = remapping.rendered_name
        if import_path.startswith(prefix) and len(prefix) >= best_len:
            best, best_len = remapping, len(prefix)

    if best is None:
        return import_path
    return best.rendered_path + import_path[best_len:]


def find_existing_remappings(root: Union[str, Path], lib_dir: Union[str, Path],
                             declared: Iterable[str] = ()) -> List[Remapping]:
    """Collect the remappings a project already has before anything is cloned into it.

    Order: entries declared in the configuration, lines of ``remappings.txt``,
    then one auto-detected remapping per dependency under the library
    directory that is not already covered by name.
    """
    root = Path(root)
    lib_dir = Path(lib_dir)
    remappings: List[Remapping] = []

    try:
        for entry in declared:
            remappings.append(Remapping.parse(entry))

        remappings_txt = root / REMAPPINGS_TXT
        if remappings_txt.is_file():
            for line in remappings_txt.read_text(encoding='utf-8').splitlines():
                if line.strip() and not line.lstrip().startswith('#'):
                    remappings.append(Remapping.parse(line))
    except ValueError as e:
        raise ConfigurationError(f"Existing remappings of {root}: {e}") from e

    known = {r.rendered_name for r in remappings}
    if lib_dir.is_dir():
        for dependency in sorted(lib_dir.iterdir()):
            if not dependency.is_dir() or dependency.name.startswith('.'):
                continue
            name = f"{dependency.name}/"
            if name in known:
                continue
            target = dependency / 'src' if (dependency / 'src').is_dir() else dependency
            remappings.append(Remapping(context=None, name=name, path=str(target) + '/'))

    logger.debug("Found %d existing remappings in %s", len(remappings), root)
    return remappings
