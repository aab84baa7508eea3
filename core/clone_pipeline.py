#!/usr/bin/env python3
"""
Clone pipeline.

Clones an on-chain contract from a block explorer into a local foundry
project:

1. fetch the verified sources and compiler settings
2. initialize an empty project at the target root
3. dump the sources into the project and reconcile remappings
4. write the explorer's compiler settings into ``foundry.toml``
5. compile, extract the target's storage layout and fetch its creation
   transaction, then persist everything as the read-only ``.clone.meta``
6. optionally stage and commit the result

Any failure is terminal. Partially written project state is left in place.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from core.clone_metadata import CloneMetadata
from core.config_manager import ConfigManager
from core.config_synthesizer import ConfigSynthesizer, ensure_remappings_txt_absent, export_remappings_txt
from core.contract_metadata import ContractMetadata
from core.errors import CloneError, CompilationError, InputError
from core.etherscan_fetcher import EtherscanFetcher
from core.foundry_config import FoundryConfigDocument
from core.foundry_integration import FoundryIntegration, find_main_contract
from core.git_client import GitClient
from core.project_initializer import InstallOptions, ProjectInitializer
from core.remapping import find_existing_remappings
from core.remapping_reconciler import RemappingReconciler
from core.source_materializer import SourceMaterializer

logger = logging.getLogger(__name__)


class CloneStage(Enum):
    FETCHING = 'fetching'
    PROJECT_INITIALIZED = 'project-initialized'
    SOURCES_MATERIALIZED = 'sources-materialized'
    CONFIG_SYNTHESIZED = 'config-synthesized'
    COMPILED = 'compiled-and-fingerprinted'
    COMMITTED = 'committed'
    FAILED = 'failed'


@dataclass(frozen=True)
class CloneOptions:
    """One clone request."""
    address: str
    root: Path = Path('.')
    no_remappings_txt: bool = False
    keep_directory_structure: bool = False
    install: InstallOptions = field(default_factory=InstallOptions)


class ClonePipeline:
    """Runs one clone request through every stage, in order."""

    def __init__(self,
                 config_manager: Optional[ConfigManager] = None,
                 fetcher: Optional[EtherscanFetcher] = None,
                 initializer: Optional[ProjectInitializer] = None,
                 foundry: Optional[FoundryIntegration] = None,
                 git_factory: Optional[Callable[[Path], GitClient]] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.console = Console()
        self.config_manager = config_manager or ConfigManager()
        config = self.config_manager.config
        self.fetcher = fetcher or EtherscanFetcher(self.config_manager)
        self.foundry = foundry or FoundryIntegration(config.forge_path, config.compile_timeout)
        self.initializer = initializer or ProjectInitializer(self.foundry)
        self.git_factory = git_factory or (lambda root: GitClient(root, git_path=config.git_path))
        self.sleep = sleep
        self.stage: Optional[CloneStage] = None
        self._step = ''

    def _enter(self, step: str) -> None:
        self._step = step
        logger.debug("Clone step: %s", step)

    def _complete(self, stage: CloneStage) -> None:
        self.stage = stage
        logger.info("Clone stage reached: %s", stage.value)

    def run(self, options: CloneOptions) -> CloneMetadata:
        address = options.address
        chain_id = self.fetcher.chain_id
        self.stage = None

        try:
            self._enter('fetch metadata')
            self.stage = CloneStage.FETCHING
            metadata = self.collect_metadata(address)

            self._enter('initialize project')
            self.initializer.init_empty_project(Path(options.root), options.install)
            # the root exists from here on
            root = Path(options.root).resolve()
            self._complete(CloneStage.PROJECT_INITIALIZED)

            self.parse_metadata(metadata, chain_id, root,
                                no_remappings_txt=options.no_remappings_txt,
                                keep_directory_structure=options.keep_directory_structure)

            self._enter('compile and fingerprint')
            record = self.collect_compilation_metadata(metadata, chain_id, address, root)
            self._complete(CloneStage.COMPILED)

            if options.install.commit:
                self._enter('commit')
                git = self.git_factory(root)
                git.stage_all()
                git.commit(f"chore: forge clone {address}")
                self._complete(CloneStage.COMMITTED)

            return record
        except CloneError as e:
            e.stage = e.stage or self._step
            self.stage = CloneStage.FAILED
            raise
        except OSError as e:
            self.stage = CloneStage.FAILED
            raise CloneError(f"I/O error: {e}", stage=self._step) from e

    def collect_metadata(self, address: str) -> ContractMetadata:
        """Fetch and vet explorer metadata; nothing is written to disk here."""
        metadata = self.fetcher.fetch_verified_source(address)
        if metadata.is_vyper():
            raise InputError("Vyper contracts are not supported")
        return metadata

    def parse_metadata(self, metadata: ContractMetadata, chain_id: int, root: Path,
                       no_remappings_txt: bool = False, keep_directory_structure: bool = False) -> None:
        """Materialize sources and synthesize ``foundry.toml`` from explorer metadata."""
        self._enter('materialize sources')
        document = FoundryConfigDocument.load(root)
        paths = document.project_paths()
        if not no_remappings_txt:
            ensure_remappings_txt_absent(root)

        # must be collected before any source is moved into the project
        existing = find_existing_remappings(root, paths.libraries, document.get('remappings') or [])
        result = SourceMaterializer(paths).materialize(metadata, keep_directory_structure)
        self._complete(CloneStage.SOURCES_MATERIALIZED)

        self._enter('synthesize configuration')
        remappings = RemappingReconciler(paths).reconcile(
            existing, result.remappings, metadata.settings.remappings, result.reorganized
        )
        synthesizer = ConfigSynthesizer(document)
        synthesizer.write_remappings(remappings)
        synthesizer.synthesize(metadata, chain_id, remappings)
        if not no_remappings_txt:
            export_remappings_txt(document)
        document.save()
        self._complete(CloneStage.CONFIG_SYNTHESIZED)

    def collect_compilation_metadata(self, metadata: ContractMetadata, chain_id: int,
                                     address: str, root: Path) -> CloneMetadata:
        """Compile the clone, fingerprint its storage layout and persist the clone record."""
        self.console.print("[cyan]🔨 Compiling the cloned project...[/cyan]")
        output = self.foundry.compile_project(root)
        artifact = find_main_contract(output, metadata.contract_name)
        if artifact.storage_layout is None:
            raise CompilationError(
                f"Storage layout not found in the artifact of {metadata.contract_name}"
            )

        self.console.print(f"[cyan]Collecting the creation information of {address} from Etherscan...[/cyan]")
        if not self.fetcher.has_api_key:
            cooldown = self.config_manager.config.anonymous_cooldown
            self.console.print(f"[yellow]⚠️ Waiting for {cooldown:g} seconds to avoid rate limit...[/yellow]")
            self.sleep(cooldown)
        creation = self.fetcher.fetch_creation_data(address)

        record = CloneMetadata(
            path=artifact.source_path,
            target_contract=metadata.contract_name,
            address=address,
            chain_id=chain_id,
            creation_transaction=creation.transaction_hash,
            deployer=creation.deployer,
            constructor_arguments=metadata.constructor_arguments,
            storage_layout=artifact.storage_layout,
        )
        record.write(root)
        self.console.print(f"[green]✅ Cloned {metadata.contract_name} into {root}[/green]")
        return record
