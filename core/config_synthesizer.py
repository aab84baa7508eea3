#!/usr/bin/env python3
"""
Build Config Synthesizer

Translates the explorer's compiler settings into the cloned project's
``foundry.toml`` so a rebuild uses the exact compiler, EVM target, optimizer
and library bindings of the on-chain bytecode. Only fields the explorer
reported are written; everything else keeps the project's defaults.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from core.contract_metadata import ContractMetadata, OptimizerDetails
from core.errors import ConfigurationError, LayoutError
from core.foundry_config import FoundryConfigDocument
from core.remapping import REMAPPINGS_TXT, Remapping, resolve_import

logger = logging.getLogger(__name__)

OPTIMIZER_DETAILS = 'optimizer_details'
YUL_DETAILS = 'yulDetails'


class ConfigSynthesizer:
    """Write explorer compiler settings into the active foundry profile."""

    def __init__(self, document: FoundryConfigDocument):
        self.document = document

    def _set_if_present(self, path: Sequence[str], value: Any) -> None:
        if value is not None:
            self.document.set(list(path), value)

    def write_remappings(self, remappings: Iterable[Remapping]) -> None:
        self.document.set('remappings', [str(r) for r in remappings])
        # cloned projects rarely follow the conventional layout
        self.document.set('auto_detect_remappings', False)

    def synthesize(self, metadata: ContractMetadata, chain_id: int, remappings: Sequence[Remapping]) -> None:
        settings = metadata.settings
        if settings.stop_after is not None:
            raise ConfigurationError(
                f"Compiler setting stopAfter={settings.stop_after!r} is incompatible with a full rebuild"
            )
        major, minor, patch = metadata.compiler_version()

        doc = self.document
        doc.set('chain_id', int(chain_id))
        doc.set('auto_detect_solc', False)
        doc.set('solc_version', f"{major}.{minor}.{patch}")

        self._set_if_present(['evm_version'], settings.evm_version)
        self._set_if_present(['via_ir'], settings.via_ir)

        if settings.metadata is not None:
            self._set_if_present(['cbor_metadata'], settings.metadata.cbor_metadata)
            self._set_if_present(['use_literal_content'], settings.metadata.use_literal_content)
            self._set_if_present(['bytecode_hash'], settings.metadata.bytecode_hash)

        self._set_if_present(['optimizer'], settings.optimizer.enabled)
        self._set_if_present(['optimizer_runs'], settings.optimizer.runs)

        doc.set('libraries', self.render_libraries(settings.libraries, remappings))

        if settings.optimizer.details is not None:
            self._write_optimizer_details(settings.optimizer.details)

        logger.info("Synthesized profile '%s' for solc %d.%d.%d", doc.profile, major, minor, patch)

    def _write_optimizer_details(self, details: OptimizerDetails) -> None:
        self.document.set_table(OPTIMIZER_DETAILS)
        fields = (
            ('peephole', details.peephole),
            ('inliner', details.inliner),
            ('jumpdestRemover', details.jumpdest_remover),
            ('orderLiterals', details.order_literals),
            ('deduplicate', details.deduplicate),
            ('cse', details.cse),
            ('constantOptimizer', details.constant_optimizer),
            ('simpleCounterForLoopUncheckedIncrement', details.simple_counter_for_loop_unchecked_increment),
            ('yul', details.yul),
        )
        for key, value in fields:
            self._set_if_present([OPTIMIZER_DETAILS, key], value)

        if details.yul_details is not None:
            self.document.set_table([OPTIMIZER_DETAILS, YUL_DETAILS])
            self._set_if_present([OPTIMIZER_DETAILS, YUL_DETAILS, 'stackAllocation'],
                                 details.yul_details.stack_allocation)
            self._set_if_present([OPTIMIZER_DETAILS, YUL_DETAILS, 'optimizerSteps'],
                                 details.yul_details.optimizer_steps)

    def render_libraries(self, libraries: Dict[str, Dict[str, str]], remappings: Sequence[Remapping]) -> List[str]:
        """Render ``path:name:address`` entries with remapped, root-relative paths."""
        root = self.document.root
        rendered = []
        for path in sorted(libraries):
            resolved = resolve_import(path, remappings)
            resolved_path = Path(resolved)
            if resolved_path.is_absolute():
                try:
                    resolved = resolved_path.relative_to(root).as_posix()
                except ValueError:
                    pass
            for name in sorted(libraries[path]):
                rendered.append(f"{resolved}:{name}:{libraries[path][name]}")
        return rendered


def ensure_remappings_txt_absent(root: Path) -> None:
    remappings_txt = Path(root) / REMAPPINGS_TXT
    if remappings_txt.exists():
        raise LayoutError(f"{REMAPPINGS_TXT} already exists, please remove it first: {remappings_txt}")


def export_remappings_txt(document: FoundryConfigDocument) -> Path:
    """Move the profile's remappings into ``remappings.txt`` (never overwriting it)."""
    ensure_remappings_txt_absent(document.root)
    remappings_txt = document.root / REMAPPINGS_TXT
    remappings = document.get('remappings') or []
    remappings_txt.write_text('\n'.join(remappings), encoding='utf-8')
    document.remove('remappings')
    logger.info("Exported %d remappings to %s", len(remappings), remappings_txt)
    return remappings_txt
