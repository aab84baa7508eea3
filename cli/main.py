"""
Main CLI implementation for ChainClone.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from core.clone_pipeline import ClonePipeline, CloneOptions
from core.config_manager import ConfigManager
from core.errors import CloneError
from core.etherscan_fetcher import EtherscanFetcher
from core.foundry_integration import FoundryIntegration
from core.project_initializer import InstallOptions
from core.storage_layout import StorageLayoutChecker

logger = logging.getLogger(__name__)


class ChainCloneCLI:
    """Main CLI class for ChainClone."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        self.version = "0.1.0"
        self.console = Console()
        self.config_manager = config_manager or ConfigManager()

    def show_version(self):
        """Display version information."""
        config = self.config_manager.config
        print(f"ChainClone v{self.version}")
        print(f"forge: {FoundryIntegration(config.forge_path).get_foundry_version()}")

    def run_clone(self, address: str, root: str = '.', chain: Optional[str] = None,
                  etherscan_api_key: Optional[str] = None, no_remappings_txt: bool = False,
                  keep_directory_structure: bool = False, no_git: bool = False,
                  shallow: bool = False, commit: bool = False) -> int:
        """Clone ``address`` into ``root``."""
        config = self.config_manager.config
        if etherscan_api_key:
            config.etherscan_api_key = etherscan_api_key
        if chain:
            config.chain = chain

        options = CloneOptions(
            address=address,
            root=Path(root),
            no_remappings_txt=no_remappings_txt,
            keep_directory_structure=keep_directory_structure,
            install=InstallOptions(no_git=no_git, shallow=shallow, commit=commit),
        )

        try:
            pipeline = ClonePipeline(
                self.config_manager,
                fetcher=EtherscanFetcher(self.config_manager),
            )
            record = pipeline.run(options)
        except CloneError as e:
            self.console.print(f"[red]❌ Clone failed: {escape(str(e))}[/red]")
            return 1

        self.console.print(f"[green]✅ {record.target_contract} cloned from {record.address}[/green]")
        self.console.print(f"   Source: {record.path}")
        self.console.print(f"   Creation tx: {record.creation_transaction}")
        return 0

    def run_check_layout(self, root: str = '.') -> int:
        """Compare a clone's storage layout with its clone record."""
        config = self.config_manager.config
        checker = StorageLayoutChecker(FoundryIntegration(config.forge_path, config.compile_timeout))
        try:
            result = checker.check(Path(root))
        except (CloneError, FileNotFoundError) as e:
            self.console.print(f"[red]❌ Storage layout check failed: {escape(str(e))}[/red]")
            return 1

        if result.compatible:
            self.console.print(f"[green]✅ Storage layout of {result.contract} is compatible[/green]")
            return 0

        self.console.print(f"[red]❌ Storage layout of {result.contract} changed:[/red]")
        for difference in result.differences:
            self.console.print(f"   - {escape(difference)}")
        return 1

    def list_networks(self) -> None:
        table = Table(title="Supported Networks")
        table.add_column("Network", style="cyan")
        table.add_column("Name")
        table.add_column("Chain ID", style="green")
        for key, info in EtherscanFetcher.SUPPORTED_NETWORKS.items():
            table.add_row(key, info['name'], str(info['chain_id']))
        self.console.print(table)
