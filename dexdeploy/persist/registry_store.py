"""JSON file persistence for the dexes snapshot and the chain config."""

import json
from pathlib import Path
from typing import Any

import structlog

from ..core.errors import PersistenceError
from ..core.interfaces import RegistryPersistence
from ..core.types import AmmRecord

logger = structlog.get_logger(__name__)


class JsonRegistryStore(RegistryPersistence):
    """File-backed registry storage.

    The dexes snapshot is replaced wholesale on every run. The config file is
    cumulative: each run rewrites only its own chain entry. A single writer
    process is assumed; there is no file locking.
    """

    def __init__(self, dexes_path: str | Path, config_path: str | Path) -> None:
        """Initialize registry store.

        Args:
            dexes_path: Path of the per-run dexes snapshot file
            config_path: Path of the cumulative chain config file
        """
        self.dexes_path = Path(dexes_path)
        self.config_path = Path(config_path)

        logger.info(
            "Registry store initialized",
            dexes_path=str(self.dexes_path),
            config_path=str(self.config_path),
        )

    def purge_dexes(self) -> bool:
        """Remove a stale dexes snapshot; absence is not an error."""
        try:
            self.dexes_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(
                f"Cannot remove dexes snapshot {self.dexes_path}: {e}"
            ) from e

        logger.info("Existing dexes snapshot removed", path=str(self.dexes_path))
        return True

    def persist_dexes(self, records: list[AmmRecord]) -> None:
        """Overwrite the dexes snapshot with the current run's records."""
        payload = [record.to_json_dict() for record in records]
        self._write_json(self.dexes_path, payload)

        logger.info(
            "Dexes snapshot written", path=str(self.dexes_path), count=len(records)
        )

    def load_dexes(self) -> list[dict[str, Any]]:
        """Load the dexes snapshot, or an empty list if none exists."""
        payload = self._read_json(self.dexes_path, default=[])
        if not isinstance(payload, list):
            raise PersistenceError(
                f"Dexes snapshot {self.dexes_path} must contain a JSON array"
            )
        return payload

    def load_config(self) -> dict[str, Any]:
        """Load the cumulative config; a missing file is an empty mapping.

        Raises:
            PersistenceError: If the file exists but is not a JSON object
        """
        config = self._read_json(self.config_path, default={})
        if not isinstance(config, dict):
            raise PersistenceError(
                f"Config file {self.config_path} must contain a JSON object"
            )
        return config

    def merge_config(
        self, chain_id: int, token_addresses: dict[str, str], amm_addresses: list[str]
    ) -> dict[str, Any]:
        """Merge one chain's addresses into the config file.

        Token entries are keyed by lowercased symbol. The chain's AMM address
        list is replaced, not appended to. Entries for other chains and
        unrelated keys under this chain are preserved.

        Args:
            chain_id: Numeric chain identifier
            token_addresses: Token addresses keyed by symbol
            amm_addresses: AMM contract addresses deployed in this run

        Returns:
            The full config mapping as written
        """
        config = self.load_config()
        key = str(chain_id)

        entry = config.get(key)
        if not isinstance(entry, dict):
            entry = {}
        for symbol, address in token_addresses.items():
            entry[symbol.lower()] = {"address": address}
        entry["amm"] = {"addresses": list(amm_addresses)}
        config[key] = entry

        self._write_json(self.config_path, config)

        logger.info(
            "Config updated",
            path=str(self.config_path),
            chain_id=key,
            tokens=token_addresses,
            amm_count=len(amm_addresses),
            chains=len(config),
        )
        return config

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error("Failed to parse JSON file", path=str(path), error=str(e))
            raise PersistenceError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            logger.error("Failed to read JSON file", path=str(path), error=str(e))
            raise PersistenceError(f"Cannot read {path}: {e}") from e

    def _write_json(self, path: Path, payload: Any) -> None:
        # Replace via a sibling temp file so the target is never half written
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            logger.error("Failed to write JSON file", path=str(path), error=str(e))
            raise PersistenceError(f"Cannot write {path}: {e}") from e
