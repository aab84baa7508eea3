"""
Tests for core.contract_metadata: decoding explorer entries into typed records.
"""

import json
import unittest

import pytest

from core.contract_metadata import ContractMetadata, sanitize_source_path
from core.errors import ConfigurationError, InputError, LayoutError

from conftest import MATH_SOLIDITY, TOKEN_SOLIDITY, explorer_item, standard_json_source


class TestStandardJsonSources(unittest.TestCase):

    def setUp(self):
        self.metadata = ContractMetadata.from_explorer(explorer_item())

    def test_sources_decoded(self):
        self.assertEqual(sorted(self.metadata.sources), [
            "@openzeppelin/contracts/token/ERC20/IERC20.sol",
            "contracts/Token.sol",
            "contracts/utils/Math.sol",
        ])
        self.assertEqual(self.metadata.sources["contracts/Token.sol"], TOKEN_SOLIDITY)

    def test_settings_decoded(self):
        settings = self.metadata.settings
        self.assertTrue(settings.optimizer.enabled)
        self.assertEqual(settings.optimizer.runs, 200)
        self.assertIsNone(settings.optimizer.details)
        self.assertEqual(settings.evm_version, "paris")
        self.assertIsNone(settings.via_ir)
        self.assertIsNone(settings.stop_after)
        self.assertEqual(settings.remappings, ())

    def test_constructor_arguments_prefixed(self):
        self.assertEqual(self.metadata.constructor_arguments, "0x" + "0" * 62 + "2a")

    def test_source_tree_nests_under_contract_name(self):
        self.assertEqual(list(self.metadata.source_tree()), [
            "Token/@openzeppelin/contracts/token/ERC20/IERC20.sol",
            "Token/contracts/Token.sol",
            "Token/contracts/utils/Math.sol",
        ])

    def test_source_tree_refuses_paths_that_collapse_together(self):
        metadata = ContractMetadata.from_explorer(explorer_item(standard_json_source(sources={
            "contracts/A.sol": {"content": "// one"},
            "./contracts/A.sol": {"content": "// two"},
        })))
        with self.assertRaisesRegex(LayoutError, "Token/contracts/A.sol"):
            metadata.source_tree()


class TestCompilerSettings:

    def test_optimizer_details_and_yul_details(self):
        settings = {
            "optimizer": {
                "enabled": True,
                "runs": 1000,
                "details": {"peephole": True, "yul": False,
                            "yulDetails": {"stackAllocation": True, "optimizerSteps": "dhfoDgvulfnTUtnIf"}},
            },
            "viaIR": True,
            "metadata": {"bytecodeHash": "none", "appendCBOR": False, "useLiteralContent": True},
            "remappings": ["@oz/=node_modules/@oz/"],
            "libraries": {"contracts/utils/Math.sol": {"Math": "0x" + "11" * 20}},
        }
        metadata = ContractMetadata.from_explorer(explorer_item(standard_json_source(settings=settings)))
        parsed = metadata.settings

        assert parsed.optimizer.details.peephole is True
        assert parsed.optimizer.details.yul is False
        assert parsed.optimizer.details.inliner is None
        assert parsed.optimizer.details.yul_details.stack_allocation is True
        assert parsed.optimizer.details.yul_details.optimizer_steps == "dhfoDgvulfnTUtnIf"
        assert parsed.via_ir is True
        assert parsed.metadata.bytecode_hash == "none"
        assert parsed.metadata.cbor_metadata is False
        assert parsed.metadata.use_literal_content is True
        assert parsed.remappings == ("@oz/=node_modules/@oz/",)
        assert parsed.libraries == {"contracts/utils/Math.sol": {"Math": "0x" + "11" * 20}}

    def test_default_evm_version_is_absent(self):
        settings = {"evmVersion": "default"}
        metadata = ContractMetadata.from_explorer(explorer_item(standard_json_source(settings=settings)))
        assert metadata.settings.evm_version is None
        assert metadata.settings.optimizer.enabled is None

    def test_stop_after_recorded(self):
        settings = {"stopAfter": "parsing"}
        metadata = ContractMetadata.from_explorer(explorer_item(standard_json_source(settings=settings)))
        assert metadata.settings.stop_after == "parsing"


class TestFlatSources:

    def test_single_file_source(self):
        metadata = ContractMetadata.from_explorer(explorer_item(TOKEN_SOLIDITY))
        assert metadata.sources == {"Token.sol": TOKEN_SOLIDITY}
        assert metadata.settings.optimizer.enabled is True
        assert metadata.settings.optimizer.runs == 200
        assert metadata.settings.evm_version is None

    def test_flat_fields_evm_version(self):
        metadata = ContractMetadata.from_explorer(explorer_item(TOKEN_SOLIDITY, EVMVersion="shanghai",
                                                                OptimizationUsed="0"))
        assert metadata.settings.evm_version == "shanghai"
        assert metadata.settings.optimizer.enabled is False

    def test_file_map_source(self):
        source = json.dumps({
            "Token.sol": {"content": TOKEN_SOLIDITY},
            "Math.sol": {"content": MATH_SOLIDITY},
        })
        metadata = ContractMetadata.from_explorer(explorer_item(source))
        assert sorted(metadata.sources) == ["Math.sol", "Token.sol"]

    def test_library_bound_to_declaring_file(self):
        source = json.dumps({
            "Token.sol": {"content": TOKEN_SOLIDITY},
            "utils/Math.sol": {"content": MATH_SOLIDITY},
        })
        address = "0x" + "22" * 20
        metadata = ContractMetadata.from_explorer(explorer_item(source, Library=f"Math:{address}"))
        assert metadata.settings.libraries == {"utils/Math.sol": {"Math": address}}

    def test_library_falls_back_to_first_source(self):
        metadata = ContractMetadata.from_explorer(explorer_item(TOKEN_SOLIDITY, Library="Missing:0xabc"))
        assert metadata.settings.libraries == {"Token.sol": {"Missing": "0xabc"}}


class TestValidation:

    def test_unverified_contract(self):
        with pytest.raises(InputError, match="not verified"):
            ContractMetadata.from_explorer(explorer_item("", ContractName=""))

    def test_malformed_json(self):
        with pytest.raises(InputError, match="Ill-formed"):
            ContractMetadata.from_explorer(explorer_item("{{\"sources\": "))

    @pytest.mark.parametrize("sources", [
        {"A.sol": "contract A {}"},
        {"A.sol": None},
        ["A.sol"],
    ])
    def test_ill_formed_sources_entries(self, sources):
        source_code = "{" + json.dumps({"language": "Solidity", "sources": sources}) + "}"
        with pytest.raises(InputError, match="Ill-formed"):
            ContractMetadata.from_explorer(explorer_item(source_code))

    def test_compiler_version(self):
        metadata = ContractMetadata.from_explorer(explorer_item())
        assert metadata.compiler_version() == (0, 8, 19)

    def test_unparseable_compiler_version(self):
        metadata = ContractMetadata.from_explorer(explorer_item(CompilerVersion="nightly"))
        with pytest.raises(ConfigurationError):
            metadata.compiler_version()

    def test_vyper_detection(self):
        assert ContractMetadata.from_explorer(explorer_item("# @version 0.3.7",
                                                            CompilerVersion="vyper:0.3.7")).is_vyper()
        assert not ContractMetadata.from_explorer(explorer_item()).is_vyper()


@pytest.mark.parametrize("raw,expected", [
    ("contracts/Token.sol", "contracts/Token.sol"),
    ("/abs/path/Token.sol", "abs/path/Token.sol"),
    ("../../etc/Token.sol", "etc/Token.sol"),
    ("./a/./b/../C.sol", "a/b/C.sol"),
    ("dir\\Win.sol", "dir/Win.sol"),
])
def test_sanitize_source_path(raw, expected):
    assert sanitize_source_path(raw) == expected
