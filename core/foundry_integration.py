#!/usr/bin/env python3
"""
Foundry Integration for ChainClone

Drives the ``forge`` binary for a cloned project:
- project initialization (``forge init``)
- full compilation with storage layout output
- artifact discovery in the build output directory
"""

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from core.errors import CompilationError
from core.foundry_config import FoundryConfigDocument
from utils.file_handler import get_tool_env

logger = logging.getLogger(__name__)

BUILD_INFO_DIR = 'build-info'
STORAGE_LAYOUT_OUTPUT = 'storageLayout'


@dataclass
class CompiledArtifact:
    """One contract artifact produced by ``forge build``."""
    # root-relative; None when the artifact does not name its source
    source_path: Optional[str]
    contract_name: str
    storage_layout: Optional[Dict[str, Any]]
    artifact_path: Path


@dataclass
class CompileOutput:
    """All artifacts of one compile run."""
    artifacts: List[CompiledArtifact] = field(default_factory=list)

    def artifacts_named(self, contract_name: str) -> List[CompiledArtifact]:
        return [a for a in self.artifacts if a.contract_name == contract_name]


class FoundryIntegration:
    """Thin wrapper around the forge CLI."""

    def __init__(self, foundry_path: str = "forge", timeout: int = 900):
        self.foundry_path = foundry_path
        self.timeout = timeout

    def get_foundry_version(self) -> str:
        """Get Foundry version."""
        try:
            result = subprocess.run(
                [self.foundry_path, "--version"],
                capture_output=True,
                text=True,
                timeout=10,
                env=get_tool_env()
            )
            if result.returncode == 0:
                return result.stdout.strip()
            return "Unknown"
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return "Not available"

    def run_forge(self, args: Sequence[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
        """Run ``forge <args>``. FileNotFoundError and TimeoutExpired propagate."""
        cmd = [self.foundry_path, *args]
        logger.debug("Running %s", ' '.join(cmd))
        return subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            env=get_tool_env()
        )

    def compile_project(self, root: Path) -> CompileOutput:
        """Compile the whole project with storage layout output requested."""
        root = Path(root)
        try:
            result = self.run_forge(
                ['build', '--root', str(root), '--extra-output', STORAGE_LAYOUT_OUTPUT],
                cwd=root,
            )
        except FileNotFoundError:
            raise CompilationError(f"Forge not found: {self.foundry_path}")
        except subprocess.TimeoutExpired:
            raise CompilationError(f"Forge compilation timed out after {self.timeout}s")

        if result.returncode != 0:
            details = (result.stderr or result.stdout or '').strip()
            raise CompilationError(f"Compilation failed:\n{details[-4000:]}")

        out_dir = FoundryConfigDocument.load(root).project_paths().artifacts
        artifacts = collect_artifacts(out_dir, root)
        logger.info("Compiled %s: %d artifacts", root, len(artifacts))
        return CompileOutput(artifacts=artifacts)


def collect_artifacts(out_dir: Path, root: Path) -> List[CompiledArtifact]:
    """Read every contract artifact below ``out_dir`` (build-info excluded)."""
    artifacts = []
    if not out_dir.is_dir():
        return artifacts

    for artifact_path in sorted(out_dir.rglob('*.json')):
        if BUILD_INFO_DIR in artifact_path.relative_to(out_dir).parts:
            continue
        try:
            with open(artifact_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Skipping unreadable artifact %s: %s", artifact_path, e)
            continue
        if not isinstance(data, dict):
            continue

        # Foo.json or Foo.0.8.19.json when several compiler versions are in play
        contract_name = artifact_path.name.split('.')[0]
        artifacts.append(CompiledArtifact(
            source_path=_artifact_source_path(data, contract_name, root),
            contract_name=contract_name,
            storage_layout=data.get(STORAGE_LAYOUT_OUTPUT),
            artifact_path=artifact_path,
        ))
    return artifacts


def _artifact_source_path(data: Dict[str, Any], contract_name: str, root: Path) -> Optional[str]:
    metadata = data.get('metadata')
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except json.JSONDecodeError:
            metadata = None
    if not isinstance(metadata, dict) and isinstance(data.get('rawMetadata'), str):
        try:
            metadata = json.loads(data['rawMetadata'])
        except json.JSONDecodeError:
            metadata = None

    source_path = None
    if isinstance(metadata, dict):
        target = (metadata.get('settings') or {}).get('compilationTarget') or {}
        for path, name in target.items():
            if name == contract_name:
                source_path = path
                break
    if source_path is None:
        source_path = (data.get('ast') or {}).get('absolutePath')
    if not source_path:
        return None

    path = Path(source_path)
    if path.is_absolute():
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            return source_path
    return path.as_posix()


def find_main_contract(output: CompileOutput, contract_name: str) -> CompiledArtifact:
    """Return the single artifact for ``contract_name``.

    The same source file may appear once per compiler version; two different
    files defining the name is ambiguous and rejected.
    """
    by_source: Dict[str, CompiledArtifact] = {}
    for artifact in output.artifacts_named(contract_name):
        if artifact.source_path is None:
            raise CompilationError(
                f"Artifact {artifact.artifact_path} does not name the source file of {contract_name}"
            )
        by_source.setdefault(artifact.source_path, artifact)

    if not by_source:
        raise CompilationError(f"Contract not found: {contract_name}")
    if len(by_source) > 1:
        files = ', '.join(sorted(by_source))
        raise CompilationError(
            f"Multiple contracts named {contract_name} found ({files}); ambiguous targets are not yet supported"
        )
    return next(iter(by_source.values()))
