"""Contract artifacts loaded from compiled JSON files."""

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from ..core.errors import ContractNotFoundError, SetupError
from ..core.interfaces import ContractRegistry
from ..core.types import ContractSource

logger = structlog.get_logger(__name__)

TOKEN_KIND = "Token"
AMM_KIND = "AMM"


class FileContractRegistry(ContractRegistry):
    """Reads `<artifacts_dir>/<kind>.json` files holding `abi` and `bytecode`."""

    def __init__(self, artifacts_dir: str | Path) -> None:
        self.artifacts_dir = Path(artifacts_dir)
        self._cache: dict[str, ContractSource] = {}

    def artifact_path(self, kind: str) -> Path:
        return self.artifacts_dir / f"{kind}.json"

    def load_contract_source(self, kind: str) -> ContractSource:
        """Load interface descriptor and bytecode for a contract kind.

        Raises:
            ContractNotFoundError: If the artifact file does not exist
            SetupError: If the artifact is not a valid compiled contract
        """
        if kind in self._cache:
            return self._cache[kind]

        path = self.artifact_path(kind)
        if not path.exists():
            logger.error("Contract artifact not found", kind=kind, path=str(path))
            raise ContractNotFoundError(kind, str(path))

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            source = ContractSource(
                kind=kind, abi=data.get("abi"), bytecode=data.get("bytecode")
            )
        except (json.JSONDecodeError, AttributeError, ValidationError) as e:
            logger.error("Invalid contract artifact", kind=kind, error=str(e))
            raise SetupError(f"Invalid contract artifact {path}: {e}") from e

        if not source.bytecode or source.bytecode == "0x":
            raise SetupError(f"Contract artifact {path} has no bytecode")

        logger.debug(
            "Contract artifact loaded",
            kind=kind,
            path=str(path),
            abi_entries=len(source.abi),
        )
        self._cache[kind] = source
        return source
