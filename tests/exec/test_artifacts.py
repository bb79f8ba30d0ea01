"""Tests for the file-backed contract registry."""

import json
import tempfile
from pathlib import Path

import pytest

from dexdeploy.core.errors import ContractNotFoundError, SetupError
from dexdeploy.exec.artifacts import AMM_KIND, TOKEN_KIND, FileContractRegistry

TOKEN_ARTIFACT = {
    "contractName": "Token",
    "abi": [
        {
            "type": "function",
            "name": "approve",
            "inputs": [
                {"name": "_spender", "type": "address"},
                {"name": "_value", "type": "uint256"},
            ],
            "outputs": [{"name": "success", "type": "bool"}],
            "stateMutability": "nonpayable",
        }
    ],
    "bytecode": "0x6080604052",
}


@pytest.fixture
def artifacts_dir():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp)
        (path / "Token.json").write_text(json.dumps(TOKEN_ARTIFACT), encoding="utf-8")
        yield path


def test_load_contract_source(artifacts_dir) -> None:
    """Test an artifact is loaded with its interface and bytecode."""
    registry = FileContractRegistry(artifacts_dir)

    source = registry.load_contract_source(TOKEN_KIND)

    assert source.kind == "Token"
    assert source.bytecode == "0x6080604052"
    assert source.abi[0]["name"] == "approve"


def test_load_contract_source_is_cached(artifacts_dir) -> None:
    """Test repeated loads reuse the parsed artifact."""
    registry = FileContractRegistry(artifacts_dir)

    first = registry.load_contract_source(TOKEN_KIND)
    (artifacts_dir / "Token.json").unlink()
    second = registry.load_contract_source(TOKEN_KIND)

    assert first is second


def test_missing_artifact(artifacts_dir) -> None:
    """Test a missing artifact raises ContractNotFoundError."""
    registry = FileContractRegistry(artifacts_dir)

    with pytest.raises(ContractNotFoundError) as exc_info:
        registry.load_contract_source(AMM_KIND)

    assert exc_info.value.kind == "AMM"
    assert exc_info.value.path.endswith("AMM.json")
    assert isinstance(exc_info.value, SetupError)


def test_invalid_json_artifact(artifacts_dir) -> None:
    """Test unparsable artifacts are setup errors."""
    (artifacts_dir / "AMM.json").write_text("{", encoding="utf-8")
    registry = FileContractRegistry(artifacts_dir)

    with pytest.raises(SetupError):
        registry.load_contract_source(AMM_KIND)


def test_artifact_without_bytecode(artifacts_dir) -> None:
    """Test interface-only artifacts cannot be deployed."""
    (artifacts_dir / "AMM.json").write_text(
        json.dumps({"abi": [], "bytecode": "0x"}), encoding="utf-8"
    )
    registry = FileContractRegistry(artifacts_dir)

    with pytest.raises(SetupError):
        registry.load_contract_source(AMM_KIND)


def test_artifact_missing_abi(artifacts_dir) -> None:
    """Test artifacts lacking an abi are rejected."""
    (artifacts_dir / "AMM.json").write_text(
        json.dumps({"bytecode": "0x60"}), encoding="utf-8"
    )
    registry = FileContractRegistry(artifacts_dir)

    with pytest.raises(SetupError):
        registry.load_contract_source(AMM_KIND)
