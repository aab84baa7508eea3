#!/usr/bin/env python3
"""
Verified contract metadata as reported by an Etherscan-compatible explorer.

The explorer's ``getsourcecode`` entry is loosely typed: the source code can
be plain Solidity, a map of files, or a full Standard-JSON compiler input,
and the compiler settings may be partial. Everything here is parsed once
into frozen records whose fields are individually optional, so later stages
only apply what the explorer actually reported.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, Optional, Tuple

from core.errors import ConfigurationError, InputError, LayoutError

COMPILER_VERSION_RE = re.compile(r'^v?(\d+)\.(\d+)\.(\d+)')
LIBRARY_DECL_RE = r'\blibrary\s+{name}\b'


def _optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes')
    return bool(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _normalize_evm_version(value: Any) -> Optional[str]:
    # "Default" means: derive from the compiler version
    if not value or str(value).strip().lower() == 'default':
        return None
    return str(value).strip()


@dataclass(frozen=True)
class YulDetails:
    stack_allocation: Optional[bool] = None
    optimizer_steps: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'YulDetails':
        return cls(
            stack_allocation=_optional_bool(data.get('stackAllocation')),
            optimizer_steps=data.get('optimizerSteps'),
        )


@dataclass(frozen=True)
class OptimizerDetails:
    peephole: Optional[bool] = None
    inliner: Optional[bool] = None
    jumpdest_remover: Optional[bool] = None
    order_literals: Optional[bool] = None
    deduplicate: Optional[bool] = None
    cse: Optional[bool] = None
    constant_optimizer: Optional[bool] = None
    simple_counter_for_loop_unchecked_increment: Optional[bool] = None
    yul: Optional[bool] = None
    yul_details: Optional[YulDetails] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OptimizerDetails':
        yul_details = data.get('yulDetails')
        return cls(
            peephole=_optional_bool(data.get('peephole')),
            inliner=_optional_bool(data.get('inliner')),
            jumpdest_remover=_optional_bool(data.get('jumpdestRemover')),
            order_literals=_optional_bool(data.get('orderLiterals')),
            deduplicate=_optional_bool(data.get('deduplicate')),
            cse=_optional_bool(data.get('cse')),
            constant_optimizer=_optional_bool(data.get('constantOptimizer')),
            simple_counter_for_loop_unchecked_increment=_optional_bool(
                data.get('simpleCounterForLoopUncheckedIncrement')),
            yul=_optional_bool(data.get('yul')),
            yul_details=YulDetails.from_dict(yul_details) if isinstance(yul_details, dict) else None,
        )


@dataclass(frozen=True)
class OptimizerSettings:
    enabled: Optional[bool] = None
    runs: Optional[int] = None
    details: Optional[OptimizerDetails] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OptimizerSettings':
        details = data.get('details')
        return cls(
            enabled=_optional_bool(data.get('enabled')),
            runs=_optional_int(data.get('runs')),
            details=OptimizerDetails.from_dict(details) if isinstance(details, dict) else None,
        )


@dataclass(frozen=True)
class MetadataSettings:
    """Bytecode metadata knobs (``settings.metadata`` in the compiler input)."""
    cbor_metadata: Optional[bool] = None
    use_literal_content: Optional[bool] = None
    bytecode_hash: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MetadataSettings':
        return cls(
            cbor_metadata=_optional_bool(data.get('appendCBOR')),
            use_literal_content=_optional_bool(data.get('useLiteralContent')),
            bytecode_hash=data.get('bytecodeHash'),
        )


@dataclass(frozen=True)
class CompilerSettings:
    """Compiler settings reported by the explorer. Every field may be absent."""
    optimizer: OptimizerSettings = field(default_factory=OptimizerSettings)
    evm_version: Optional[str] = None
    via_ir: Optional[bool] = None
    metadata: Optional[MetadataSettings] = None
    # source path -> {library name: address}
    libraries: Dict[str, Dict[str, str]] = field(default_factory=dict)
    remappings: Tuple[str, ...] = ()
    stop_after: Optional[str] = None

    @classmethod
    def from_standard_json(cls, settings: Dict[str, Any]) -> 'CompilerSettings':
        optimizer = settings.get('optimizer')
        metadata = settings.get('metadata')
        libraries = settings.get('libraries') or {}
        return cls(
            optimizer=OptimizerSettings.from_dict(optimizer) if isinstance(optimizer, dict) else OptimizerSettings(),
            evm_version=_normalize_evm_version(settings.get('evmVersion')),
            via_ir=_optional_bool(settings.get('viaIR')),
            metadata=MetadataSettings.from_dict(metadata) if isinstance(metadata, dict) else None,
            libraries={path: dict(libs) for path, libs in libraries.items() if isinstance(libs, dict)},
            remappings=tuple(settings.get('remappings') or ()),
            stop_after=settings.get('stopAfter'),
        )


@dataclass(frozen=True)
class ContractMetadata:
    """One verified contract entry fetched from the block explorer."""
    contract_name: str
    # original (unsanitized) source path -> source text
    sources: Dict[str, str]
    settings: CompilerSettings
    compiler_version_string: str
    constructor_arguments: str = '0x'
    address: str = ''

    @classmethod
    def from_explorer(cls, item: Dict[str, Any]) -> 'ContractMetadata':
        """Build the record from a raw ``getsourcecode`` result entry."""
        contract_name = item.get('ContractName') or ''
        source_code = item.get('SourceCode') or ''
        if not contract_name or not source_code:
            raise InputError("Contract source code is not available (not verified)")

        sources, standard_settings = _decode_sources(contract_name, source_code)
        if standard_settings is not None:
            settings = CompilerSettings.from_standard_json(standard_settings)
        else:
            settings = _settings_from_flat_fields(item, sources)

        constructor_args = (item.get('ConstructorArguments') or '').strip().lower()
        if constructor_args.startswith('0x'):
            constructor_args = constructor_args[2:]

        return cls(
            contract_name=contract_name,
            sources=sources,
            settings=settings,
            compiler_version_string=item.get('CompilerVersion') or '',
            constructor_arguments='0x' + constructor_args,
            address=item.get('ContractAddress') or '',
        )

    def compiler_version(self) -> Tuple[int, int, int]:
        """Parse ``v0.8.19+commit.7dd6d404`` into ``(0, 8, 19)``."""
        match = COMPILER_VERSION_RE.match(self.compiler_version_string.strip())
        if not match:
            raise ConfigurationError(f"Cannot parse compiler version: {self.compiler_version_string!r}")
        return tuple(int(part) for part in match.groups())

    def is_vyper(self) -> bool:
        if self.compiler_version_string.strip().lower().startswith('vyper'):
            return True
        return any(path.endswith('.vy') for path in self.sources)

    def source_tree(self) -> Dict[str, str]:
        """Relative path -> source text, every path nested under the contract name."""
        tree = {}
        origins = {}
        for path, content in sorted(self.sources.items()):
            key = f"{self.contract_name}/{sanitize_source_path(path)}"
            if key in tree:
                raise LayoutError(f"Source paths {origins[key]!r} and {path!r} both map to {key}")
            tree[key] = content
            origins[key] = path
        return tree


def sanitize_source_path(path: str) -> str:
    """Drop root, '.' and '..' components so a path cannot escape its parent."""
    parts = [part for part in PurePosixPath(path.replace('\\', '/')).parts
             if part not in ('/', '.', '..', '')]
    return '/'.join(parts)


def _decode_sources(contract_name: str, source_code: str) -> Tuple[Dict[str, str], Optional[Dict[str, Any]]]:
    """Return (sources, standard-json settings or None)."""
    text = source_code.strip()
    # Standard-JSON input is served wrapped in an extra pair of braces
    if text.startswith('{{') and text.endswith('}}'):
        text = text[1:-1]

    if not text.startswith('{'):
        return {f"{contract_name}.sol": source_code}, None

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise InputError(f"Ill-formed source code JSON for {contract_name}: {e}")

    if not isinstance(parsed, dict):
        raise InputError(f"Ill-formed source code JSON for {contract_name}")

    if 'sources' in parsed:
        entries = parsed['sources']
        if not isinstance(entries, dict) or not all(isinstance(entry, dict) for entry in entries.values()):
            raise InputError(f"Ill-formed source code JSON for {contract_name}")
        sources = {path: entry.get('content', '') for path, entry in entries.items()}
        return sources, parsed.get('settings') or {}

    if parsed and all(isinstance(entry, dict) and 'content' in entry for entry in parsed.values()):
        return {path: entry['content'] for path, entry in parsed.items()}, None

    raise InputError(f"Unrecognized source code layout for {contract_name}")


def _settings_from_flat_fields(item: Dict[str, Any], sources: Dict[str, str]) -> CompilerSettings:
    optimizer = OptimizerSettings(
        enabled=_optional_bool(item.get('OptimizationUsed')) if item.get('OptimizationUsed') not in (None, '') else None,
        runs=_optional_int(item.get('Runs')),
    )

    libraries: Dict[str, Dict[str, str]] = {}
    for entry in re.split(r'[;,]', item.get('Library') or ''):
        name, sep, address = entry.strip().partition(':')
        if not sep or not name or not address:
            continue
        path = _library_source_path(name.strip(), sources)
        libraries.setdefault(path, {})[name.strip()] = address.strip()

    return CompilerSettings(
        optimizer=optimizer,
        evm_version=_normalize_evm_version(item.get('EVMVersion')),
        libraries=libraries,
    )


def _library_source_path(library_name: str, sources: Dict[str, str]) -> str:
    """Pick the file declaring ``library_name``, else the first source file."""
    pattern = re.compile(LIBRARY_DECL_RE.format(name=re.escape(library_name)))
    for path in sorted(sources):
        if pattern.search(sources[path]):
            return path
    return sorted(sources)[0]
