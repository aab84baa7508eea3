#!/usr/bin/env python3
"""
Clone record (``.clone.meta``).

Captures what ``foundry.toml`` cannot: where the target contract lives, its
on-chain provenance and the storage layout it compiled to at clone time.
The record is written once per clone and then made read-only.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from utils.file_handler import make_read_only

logger = logging.getLogger(__name__)

CLONE_METADATA_FILE = '.clone.meta'


@dataclass(frozen=True)
class CloneMetadata:
    """Provenance and storage fingerprint of a cloned contract."""
    path: str
    target_contract: str
    address: str
    chain_id: int
    creation_transaction: str
    deployer: str
    constructor_arguments: str
    storage_layout: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'targetContract': self.target_contract,
            'address': self.address,
            'chainId': self.chain_id,
            'creationTransaction': self.creation_transaction,
            'deployer': self.deployer,
            'constructorArguments': self.constructor_arguments,
            'storageLayout': self.storage_layout,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CloneMetadata':
        return cls(
            path=data['path'],
            target_contract=data['targetContract'],
            address=data['address'],
            chain_id=int(data['chainId']),
            creation_transaction=data['creationTransaction'],
            deployer=data['deployer'],
            constructor_arguments=data['constructorArguments'],
            storage_layout=data['storageLayout'],
        )

    def write(self, root: Union[str, Path]) -> Path:
        """Write the record under ``root`` as a new, read-only file."""
        metadata_file = Path(root) / CLONE_METADATA_FILE
        if metadata_file.exists():
            # a re-clone replaces the record instead of editing it
            metadata_file.unlink()
        with open(metadata_file, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, sort_keys=False)
        make_read_only(metadata_file)
        logger.info("Wrote clone record %s", metadata_file)
        return metadata_file

    @classmethod
    def load(cls, root: Union[str, Path]) -> 'CloneMetadata':
        with open(Path(root) / CLONE_METADATA_FILE, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))
