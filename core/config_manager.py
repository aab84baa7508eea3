#!/usr/bin/env python3
"""
Configuration Manager for ChainClone

Manages explorer credentials, tool paths and pacing settings.
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path

import yaml
from rich.console import Console

logger = logging.getLogger(__name__)


@dataclass
class CloneConfig:
    """Main configuration for ChainClone."""

    # Etherscan API settings (empty key = anonymous access)
    etherscan_api_key: str = ""
    etherscan_base_url: str = "https://api.etherscan.io/v2/api"
    chain: str = "ethereum"

    # Explorer pacing
    request_timeout: int = 30
    request_delay: float = 0.2
    # Anonymous explorer access is rate limited; wait this long before the second request
    anonymous_cooldown: float = 5.0

    # Tooling
    forge_path: str = "forge"
    git_path: str = "git"
    compile_timeout: int = 900


class ConfigManager:
    """Manages ChainClone configuration."""

    ENV_OVERRIDES = {
        'ETHERSCAN_API_KEY': 'etherscan_api_key',
        'CHAINCLONE_CHAIN': 'chain',
    }

    def __init__(self, config_file: str = "~/.chainclone/config.yaml"):
        self.config_file = Path(config_file).expanduser()
        self.console = Console()
        self.config = CloneConfig()
        # attr -> value taken from the environment rather than the file
        self.env_overrides = {}

        self.load_config()
        self._file_values = asdict(self.config)
        self._apply_env_overrides()

    def load_config(self) -> None:
        """Load configuration from file."""
        if not self.config_file.exists():
            return

        try:
            with open(self.config_file, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self.console.print(f"[yellow]Warning: Could not load config file: {e}[/yellow]")
            return

        if not isinstance(data, dict):
            return

        known = {f.name for f in fields(CloneConfig)}
        for key, value in data.items():
            if key in known:
                setattr(self.config, key, value)
            else:
                logger.debug("Ignoring unknown config key %s", key)

    def _apply_env_overrides(self) -> None:
        for env_var, attr in self.ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                setattr(self.config, attr, value)
                self.env_overrides[attr] = value

    def save_config(self) -> None:
        """Save current configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            yaml.dump(self._persistent_values(), f, default_flow_style=False, indent=2)
        self.console.print(f"[green]✓ Configuration saved to {self.config_file}[/green]")

    def _persistent_values(self) -> dict:
        """Current settings, minus environment overrides that were never changed."""
        data = asdict(self.config)
        for attr, value in self.env_overrides.items():
            if data[attr] == value:
                data[attr] = self._file_values[attr]
        return data

    def set_etherscan_key(self, api_key: str) -> None:
        """Set Etherscan API key for contract fetching."""
        self.config.etherscan_api_key = api_key
        self.save_config()
        self.console.print("[green]✓ Etherscan API key configured[/green]")

    def show_config(self) -> None:
        """Display current configuration."""
        from rich.table import Table

        table = Table(title="⚙️ ChainClone Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        for key, value in asdict(self.config).items():
            if key == 'etherscan_api_key':
                value = f"{value[:4]}…{value[-4:]}" if len(value) > 8 else ("set" if value else "not set")
            table.add_row(key, str(value))

        self.console.print(table)
        self.console.print(f"\n[bold cyan]Config File:[/bold cyan] {self.config_file}")
