"""Ledger client backed by web3.py against an EVM JSON-RPC node."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
import structlog
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TimeExhausted, Web3Exception

from ..core.errors import LedgerError, SetupError, TransactionFailedError
from ..core.interfaces import ContractHandle, LedgerClient
from ..core.types import ContractSource

logger = structlog.get_logger(__name__)

# web3 surfaces JSON-RPC errors as ValueError on older releases
_LEDGER_EXCEPTIONS = (
    Web3Exception,
    ValueError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
)


def _is_retryable_error(exception) -> bool:
    """Check if an exception is a transient transport failure."""
    if isinstance(exception, aiohttp.ClientConnectionError):
        return True
    if isinstance(exception, asyncio.TimeoutError):
        return True
    return False


class Web3ContractHandle(ContractHandle):
    """Deployed contract bound to the client's funding account."""

    def __init__(self, client: "Web3LedgerClient", contract: Any) -> None:
        self.client = client
        self.contract = contract

    @property
    def address(self) -> str:
        return self.contract.address

    async def approve(self, spender: str, amount: int) -> str:
        """Approve `spender` to transfer `amount` base units from the account."""
        fn = self.contract.functions.approve(spender, amount)
        return await self.client.transact(fn, {}, label="approve")

    async def add_liquidity(self, amount1: int, amount2: int, gas_ceiling: int) -> str:
        """Submit addLiquidity with an explicit gas limit (no estimation)."""
        fn = self.contract.functions.addLiquidity(amount1, amount2)
        return await self.client.transact(
            fn, {"gas": gas_ceiling}, label="addLiquidity"
        )

    async def query(self, method: str, *args: Any) -> Any:
        """Call a read-only contract method."""
        # ABI lookup errors must surface as LedgerError too
        return await self.client.read(
            lambda: getattr(self.contract.functions, method)(*args).call(),
            label=method,
        )


class Web3LedgerClient(LedgerClient):
    """Submits transactions from a node-managed (unlocked) account."""

    def __init__(
        self, w3: AsyncWeb3, account: str, receipt_timeout: float = 120.0
    ) -> None:
        """Initialize ledger client.

        Args:
            w3: Connected async web3 instance
            account: Funding/signing account address (unlocked on the node)
            receipt_timeout: Seconds to wait for a transaction receipt
        """
        self.w3 = w3
        self._account = account
        self.receipt_timeout = receipt_timeout
        logger.info(
            "Ledger client initialized",
            account=account,
            receipt_timeout=receipt_timeout,
        )

    @classmethod
    async def connect(
        cls,
        rpc_url: str,
        account_index: int = 0,
        receipt_timeout: float = 120.0,
        request_timeout: float = 30.0,
    ) -> "Web3LedgerClient":
        """Connect to an RPC node and select a funding account by index.

        Raises:
            SetupError: If the node is unreachable or has no such account
        """
        provider = AsyncHTTPProvider(
            rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=request_timeout)},
        )
        w3 = AsyncWeb3(provider)

        unbound = cls(w3, account="", receipt_timeout=receipt_timeout)
        try:
            accounts = await unbound.read(lambda: w3.eth.accounts, label="accounts")
        except LedgerError as e:
            raise SetupError(f"Cannot reach RPC node at {rpc_url}: {e}") from e

        if not 0 <= account_index < len(accounts):
            raise SetupError(
                f"Account index {account_index} unavailable; "
                f"node exposes {len(accounts)} accounts"
            )

        return cls(w3, account=accounts[account_index], receipt_timeout=receipt_timeout)

    @property
    def account(self) -> str:
        return self._account

    async def chain_id(self) -> int:
        return int(await self.read(lambda: self.w3.eth.chain_id, label="chain_id"))

    async def deploy(self, source: ContractSource, *args: Any) -> ContractHandle:
        """Deploy a contract and wait until it is mined."""
        factory = self.w3.eth.contract(abi=source.abi, bytecode=source.bytecode)
        logger.info("Deploying contract", kind=source.kind, args=[str(a) for a in args])

        tx_hash = await self.transact(
            factory.constructor(*args), {}, label=f"deploy {source.kind}"
        )
        receipt = await self.wait_for_receipt(tx_hash)

        address = receipt.get("contractAddress")
        if not address:
            raise TransactionFailedError(tx_hash, "Deployment produced no contract")

        logger.info("Contract deployed", kind=source.kind, address=address)
        contract = self.w3.eth.contract(address=address, abi=source.abi)
        return Web3ContractHandle(self, contract)

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        """Wait for a transaction receipt and check its status."""
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as e:
            logger.error(
                "Transaction confirmation timeout",
                tx_hash=tx_hash,
                timeout=self.receipt_timeout,
            )
            raise LedgerError(
                f"Transaction not mined within {self.receipt_timeout}s: {tx_hash}"
            ) from e
        except _LEDGER_EXCEPTIONS as e:
            raise LedgerError(f"Receipt lookup failed for {tx_hash}: {e}") from e

        receipt = dict(receipt)
        if receipt.get("status") == 0:
            logger.error("Transaction reverted", tx_hash=tx_hash)
            raise TransactionFailedError(tx_hash)

        logger.debug(
            "Transaction confirmed",
            tx_hash=tx_hash,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )
        return receipt

    async def transact(self, fn: Any, params: dict[str, Any], label: str) -> str:
        """Submit a contract transaction from the funding account; never retried."""
        tx_params = {"from": self._account, **params}
        try:
            tx_hash = await fn.transact(tx_params)
        except _LEDGER_EXCEPTIONS as e:
            logger.error(
                "Transaction submission failed",
                label=label,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise LedgerError(f"{label} failed: {e}") from e

        tx_hash = Web3.to_hex(tx_hash)
        logger.debug("Transaction submitted", label=label, tx_hash=tx_hash)
        return tx_hash

    async def read(self, call: Callable[[], Awaitable[Any]], label: str) -> Any:
        """Run a read-only call, retrying transient transport failures."""
        try:
            return await self._read_with_retry(call)
        except _LEDGER_EXCEPTIONS as e:
            logger.error(
                "Ledger read failed",
                label=label,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise LedgerError(f"{label} failed: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_retryable_error),
        reraise=True,
    )
    async def _read_with_retry(self, call: Callable[[], Awaitable[Any]]) -> Any:
        return await call()
