"""Collaborator interfaces for the deployment run."""

from typing import Any, Protocol, runtime_checkable

from .types import AmmRecord, ContractSource


class ContractRegistry(Protocol):
    """Source of deploy-ready contract artifacts."""

    def load_contract_source(self, kind: str) -> ContractSource:
        """Load interface descriptor and bytecode for a contract kind.

        Raises:
            ContractNotFoundError: If no artifact exists for the kind
        """
        ...


@runtime_checkable
class ContractHandle(Protocol):
    """Handle to a deployed contract."""

    @property
    def address(self) -> str:
        """Contract address."""
        ...

    async def approve(self, spender: str, amount: int) -> str:
        """Submit a token approval and return the transaction hash."""
        ...

    async def add_liquidity(self, amount1: int, amount2: int, gas_ceiling: int) -> str:
        """Submit an add-liquidity transaction and return the transaction hash."""
        ...

    async def query(self, method: str, *args: Any) -> Any:
        """Call a read-only contract method."""
        ...


class LedgerClient(Protocol):
    """Signing and submission capability for the target network."""

    @property
    def account(self) -> str:
        """Funding/signing account address."""
        ...

    async def chain_id(self) -> int:
        """Numeric identifier of the connected chain."""
        ...

    async def deploy(self, source: ContractSource, *args: Any) -> ContractHandle:
        """Deploy a contract and wait until it is mined."""
        ...

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        """Wait for a transaction to be mined and confirm it succeeded.

        Raises:
            TransactionFailedError: If the transaction reverted
            LedgerError: On timeout or transport failure
        """
        ...


class RegistryPersistence(Protocol):
    """Durable storage for the dexes snapshot and chain config."""

    def purge_dexes(self) -> bool:
        """Remove a stale dexes snapshot. Returns True if one was removed."""
        ...

    def persist_dexes(self, records: list[AmmRecord]) -> None:
        """Overwrite the dexes snapshot with the current run's records."""
        ...

    def merge_config(
        self, chain_id: int, token_addresses: dict[str, str], amm_addresses: list[str]
    ) -> dict[str, Any]:
        """Merge one chain's addresses into the cumulative config file."""
        ...
