"""
Shared test fixtures for the ChainClone test suite.

Provides a foundry-style project skeleton, explorer response payloads,
a mock ConfigManager and fakes for forge so no test needs the network,
forge or git.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.contract_metadata import ContractMetadata
from core.foundry_integration import CompiledArtifact, CompileOutput


# ── Sample Solidity sources ─────────────────────────────────────

TOKEN_SOLIDITY = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.19;

import "@openzeppelin/contracts/token/ERC20/IERC20.sol";
import "contracts/utils/Math.sol";

contract Token {
    mapping(address => uint256) public balances;
    uint256 public totalSupply;
}
"""

IERC20_SOLIDITY = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

interface IERC20 {}
"""

MATH_SOLIDITY = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

library Math {
    function max(uint256 a, uint256 b) internal pure returns (uint256) {
        return a >= b ? a : b;
    }
}
"""

FOUNDRY_TOML = """\
[profile.default]
src = "src"
out = "out"
libs = ["lib"]
"""

TOKEN_STORAGE_LAYOUT = {
    "storage": [
        {"astId": 3, "contract": "contracts/Token.sol:Token", "label": "balances",
         "offset": 0, "slot": "0", "type": "t_mapping(t_address,t_uint256)"},
        {"astId": 5, "contract": "contracts/Token.sol:Token", "label": "totalSupply",
         "offset": 0, "slot": "1", "type": "t_uint256"},
    ],
    "types": {
        "t_address": {"encoding": "inplace", "label": "address", "numberOfBytes": "20"},
        "t_mapping(t_address,t_uint256)": {"encoding": "mapping", "label": "mapping(address => uint256)",
                                           "numberOfBytes": "32"},
        "t_uint256": {"encoding": "inplace", "label": "uint256", "numberOfBytes": "32"},
    },
}

VALID_ADDRESS = "0x1234567890abcdef1234567890abcdef12345678"
DEPLOYER_ADDRESS = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
CREATION_TX = "0x" + "ab" * 32


def standard_json_source(settings=None, sources=None) -> str:
    """Explorer-style double-brace Standard-JSON input."""
    payload = {
        "language": "Solidity",
        "sources": sources or {
            "contracts/Token.sol": {"content": TOKEN_SOLIDITY},
            "contracts/utils/Math.sol": {"content": MATH_SOLIDITY},
            "@openzeppelin/contracts/token/ERC20/IERC20.sol": {"content": IERC20_SOLIDITY},
        },
        "settings": settings if settings is not None else {
            "optimizer": {"enabled": True, "runs": 200},
            "evmVersion": "paris",
            "remappings": [],
        },
    }
    return "{" + json.dumps(payload) + "}"


def explorer_item(source_code=None, **overrides) -> dict:
    """One ``getsourcecode`` result entry."""
    item = {
        "SourceCode": source_code if source_code is not None else standard_json_source(),
        "ABI": "[]",
        "ContractName": "Token",
        "CompilerVersion": "v0.8.19+commit.7dd6d404",
        "OptimizationUsed": "1",
        "Runs": "200",
        "ConstructorArguments": "000000000000000000000000000000000000000000000000000000000000002a",
        "EVMVersion": "Default",
        "Library": "",
        "LicenseType": "MIT",
        "Proxy": "0",
        "Implementation": "",
        "SwarmSource": "",
    }
    item.update(overrides)
    return item


def make_skeleton(root: Path) -> Path:
    """Lay out what ``forge init`` leaves behind once examples are removed."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "foundry.toml").write_text(FOUNDRY_TOML)
    for directory in ("src", "test", "script", "lib/forge-std/src"):
        (root / directory).mkdir(parents=True, exist_ok=True)
    (root / "lib/forge-std/src/Test.sol").write_text("// forge-std\n")
    return root


class FakeInitializer:
    """Stands in for ``forge init``."""

    def __init__(self):
        self.calls = []

    def init_empty_project(self, root, install):
        self.calls.append((Path(root), install))
        make_skeleton(Path(root))


class FakeFoundry:
    """Stands in for ``forge build``: reports one artifact per ``(path, name)``."""

    def __init__(self, artifacts=None, storage_layout=TOKEN_STORAGE_LAYOUT):
        self.artifacts = artifacts
        self.storage_layout = storage_layout
        self.compiled = []

    def compile_project(self, root):
        self.compiled.append(Path(root))
        artifacts = self.artifacts
        if artifacts is None:
            artifacts = [("src/Token.sol", "Token")]
        return CompileOutput(artifacts=[
            CompiledArtifact(source_path=path, contract_name=name,
                             storage_layout=self.storage_layout,
                             artifact_path=Path(root) / "out" / Path(path).name / f"{name}.json")
            for path, name in artifacts
        ])


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def tmp_project(tmp_path):
    """A freshly initialized foundry project skeleton."""
    return make_skeleton(tmp_path / "project")


@pytest.fixture
def token_metadata():
    """Standard-JSON metadata for a Token contract spread over contracts/ and @openzeppelin."""
    return ContractMetadata.from_explorer(explorer_item(ContractAddress=VALID_ADDRESS))


@pytest.fixture
def mock_config():
    """Return a MagicMock that behaves like CloneConfig."""
    config = MagicMock()
    config.etherscan_api_key = "test-fake-etherscan-key"
    config.etherscan_base_url = "https://api.etherscan.io/v2/api"
    config.chain = "ethereum"
    config.request_timeout = 30
    config.request_delay = 0
    config.anonymous_cooldown = 5.0
    config.forge_path = "forge"
    config.git_path = "git"
    config.compile_timeout = 900
    return config


@pytest.fixture
def mock_config_manager(mock_config):
    """Return a MagicMock ConfigManager with a mock config attribute."""
    mgr = MagicMock()
    mgr.config = mock_config
    mgr.save_config = MagicMock()
    return mgr


@pytest.fixture
def mock_env_api_keys(monkeypatch):
    """Set a fake explorer key so ConfigManager doesn't read a real one."""
    monkeypatch.setenv("ETHERSCAN_API_KEY", "test-fake-etherscan-key")


@pytest.fixture(autouse=True)
def default_foundry_profile(monkeypatch):
    """Run every test against the default foundry profile."""
    monkeypatch.delenv("FOUNDRY_PROFILE", raising=False)
