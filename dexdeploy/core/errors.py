"""Error taxonomy for the deployment run."""


class DeployError(Exception):
    """Base class for errors that end a deployment run."""


class SetupError(DeployError):
    """Deployment cannot start or continue because of missing prerequisites."""


class ContractNotFoundError(SetupError):
    """Contract artifact (interface + bytecode) could not be located."""

    def __init__(self, kind: str, path: str | None = None):
        self.kind = kind
        self.path = path
        location = f" at {path}" if path else ""
        super().__init__(f"Contract source for {kind!r} not found{location}")


class PersistenceError(DeployError):
    """Registry files could not be read or written."""


class LedgerError(Exception):
    """Failure reported by the ledger client."""


class TransactionFailedError(LedgerError):
    """Transaction was mined but reverted."""

    def __init__(self, tx_hash: str, message: str = "Transaction reverted"):
        self.tx_hash = tx_hash
        super().__init__(f"{message}: {tx_hash}")


class SeedingError(LedgerError):
    """Initial liquidity could not be provided to one AMM instance.

    Recoverable: the instance is dropped from the dexes snapshot and the run
    continues.
    """

    def __init__(self, step: str, cause: Exception, amm_address: str | None = None):
        self.step = step
        self.cause = cause
        self.amm_address = amm_address
        target = f" for {amm_address}" if amm_address else ""
        super().__init__(f"Seeding{target} failed during {step}: {cause}")
