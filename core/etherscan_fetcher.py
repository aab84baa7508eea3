#!/usr/bin/env python3
"""
Etherscan Contract Source Code Fetcher

Fetches verified contract sources, compiler settings and creation data from
the Etherscan v2 multichain API. Works anonymously (rate limited) or with an
API key.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from core.config_manager import ConfigManager
from core.contract_metadata import ContractMetadata
from core.errors import ExplorerError, InputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreationData:
    """Creation transaction of a deployed contract."""
    transaction_hash: str
    deployer: str


class EtherscanFetcher:
    """Contract source code fetcher supporting multiple EVM chains."""

    # Supported networks and their chain ids
    SUPPORTED_NETWORKS = {
        'ethereum': {
            'name': 'Ethereum Mainnet',
            'chain_id': 1,
            'explorer_url': 'https://etherscan.io',
        },
        'sepolia': {
            'name': 'Ethereum Sepolia',
            'chain_id': 11155111,
            'explorer_url': 'https://sepolia.etherscan.io',
        },
        'holesky': {
            'name': 'Ethereum Holesky',
            'chain_id': 17000,
            'explorer_url': 'https://holesky.etherscan.io',
        },
        'polygon': {
            'name': 'Polygon Mainnet',
            'chain_id': 137,
            'explorer_url': 'https://polygonscan.com',
        },
        'arbitrum': {
            'name': 'Arbitrum One',
            'chain_id': 42161,
            'explorer_url': 'https://arbiscan.io',
        },
        'optimism': {
            'name': 'Optimism',
            'chain_id': 10,
            'explorer_url': 'https://optimistic.etherscan.io',
        },
        'bsc': {
            'name': 'BNB Smart Chain',
            'chain_id': 56,
            'explorer_url': 'https://bscscan.com',
        },
        'base': {
            'name': 'Base',
            'chain_id': 8453,
            'explorer_url': 'https://basescan.org',
        },
        'avalanche': {
            'name': 'Avalanche C-Chain',
            'chain_id': 43114,
            'explorer_url': 'https://snowtrace.io',
        },
        'fantom': {
            'name': 'Fantom',
            'chain_id': 250,
            'explorer_url': 'https://ftmscan.com',
        },
    }

    def __init__(self, config_manager: Optional[ConfigManager] = None, network: Optional[str] = None):
        self.console = Console()
        self.config_manager = config_manager or ConfigManager()
        config = self.config_manager.config
        self.api_key = config.etherscan_api_key
        self.base_url = config.etherscan_base_url
        self.request_delay = config.request_delay
        self.timeout = config.request_timeout

        self.current_network = 'ethereum'
        self.set_network(network or config.chain)

    @property
    def chain_id(self) -> int:
        return self.SUPPORTED_NETWORKS[self.current_network]['chain_id']

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def is_etherscan_address(self, address: str) -> bool:
        """Check if the input is a valid Ethereum-style address."""
        return (
            address.startswith('0x') and
            len(address) == 42 and
            all(c in '0123456789abcdefABCDEF' for c in address[2:])
        )

    def set_network(self, network: str) -> None:
        """Set the current network for API calls."""
        if network not in self.SUPPORTED_NETWORKS:
            raise InputError(f"Unsupported network: {network}")
        self.current_network = network
        logger.debug("Using network %s", self.SUPPORTED_NETWORKS[network]['name'])

    def _request(self, params: Dict[str, Any], description: str) -> Any:
        """Perform one explorer API call and return its ``result`` payload."""
        query = {'chainid': self.chain_id, **params}
        if self.api_key:
            query['apikey'] = self.api_key

        # Rate limiting
        time.sleep(self.request_delay)

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=self.console,
                transient=True,
            ) as progress:
                progress.add_task(description, total=None)
                response = requests.get(self.base_url, params=query, timeout=self.timeout)
                response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise ExplorerError(f"Network error querying Etherscan: {e}")
        except ValueError as e:
            raise ExplorerError(f"JSON decode error: {e}")

        if not isinstance(data, dict):
            raise ExplorerError("Unexpected Etherscan response")

        if data.get('status') != '1':
            message = f"{data.get('message', '')} {data.get('result', '')}".strip()
            if 'rate limit' in message.lower():
                raise ExplorerError('Etherscan API rate limit exceeded. Please try again later.')
            if 'invalid api key' in message.lower():
                raise ExplorerError('Invalid Etherscan API key. Please check your configuration.')
            raise ExplorerError(f"API error: {message or 'Unknown error'}")

        return data.get('result')

    def fetch_verified_source(self, address: str) -> ContractMetadata:
        """Fetch the single verified source entry for ``address``."""
        if not self.is_etherscan_address(address):
            raise InputError(f"Invalid Ethereum address format: {address}")

        self.console.print(
            f"[cyan]🔍 Downloading the source code of {address} from "
            f"{self.SUPPORTED_NETWORKS[self.current_network]['name']}...[/cyan]"
        )
        result = self._request(
            {'module': 'contract', 'action': 'getsourcecode', 'address': address},
            "Fetching from Etherscan...",
        )

        if not isinstance(result, list) or len(result) != 1:
            count = len(result) if isinstance(result, list) else 0
            raise InputError(f"Contract not found or ill-formed ({count} entries returned)")

        metadata = ContractMetadata.from_explorer(result[0])
        self.console.print(f"[green]✅ Successfully fetched contract: {metadata.contract_name}[/green]")
        self.console.print(f"[blue]📁 {len(metadata.sources)} source file(s)[/blue]")
        return metadata

    def fetch_creation_data(self, address: str) -> CreationData:
        """Fetch the creation transaction hash and deployer of ``address``."""
        result = self._request(
            {'module': 'contract', 'action': 'getcontractcreation', 'contractaddresses': address},
            "Fetching creation data...",
        )
        if not isinstance(result, list) or not result:
            raise ExplorerError(f"Creation data not found for {address}")

        entry = result[0]
        tx_hash = entry.get('txHash')
        deployer = entry.get('contractCreator')
        if not tx_hash or not deployer:
            raise ExplorerError(f"Ill-formed creation data for {address}")
        return CreationData(transaction_hash=tx_hash, deployer=deployer)
