"""Multi-instance AMM deployment and seeding orchestrator."""

import argparse
import asyncio
import random
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

import structlog

from ..config.settings import AppSettings, load_settings
from ..core.errors import DeployError, LedgerError, SetupError
from ..core.interfaces import (
    ContractHandle,
    ContractRegistry,
    LedgerClient,
    RegistryPersistence,
)
from ..core.types import (
    AmmRecord,
    ContractSource,
    DeployedToken,
    DeploymentResult,
    FeePair,
    InstanceFailure,
    LiquidityAmounts,
    SeedFailure,
    TokenSpec,
    format_units,
    to_base_units,
)
from ..exec.artifacts import AMM_KIND, TOKEN_KIND, FileContractRegistry
from ..exec.ledger import Web3LedgerClient
from ..params.generator import ParameterGenerator
from ..persist.registry_store import JsonRegistryStore
from ..seed.seeder import DEFAULT_GAS_CEILING, LiquiditySeeder
from .downstream import launch_downstream

logger = structlog.get_logger(__name__)


class DeployPhase(str, Enum):
    """Linear phases of a deployment run."""

    PURGE = "purge"
    DEPLOY_TOKENS = "deploy_tokens"
    DEPLOY_AND_SEED = "deploy_and_seed"
    EMIT = "emit"
    DONE = "done"


class InstanceOutcome(str, Enum):
    """Result of one deploy-and-seed iteration."""

    RECORDED = "recorded"
    SKIPPED = "skipped"


@dataclass
class _RunState:
    token_specs: list[TokenSpec]
    instance_count: int
    base_amount: Decimal
    chain_id: int = 0
    token_handles: list[ContractHandle] = field(default_factory=list)
    records: list[AmmRecord] = field(default_factory=list)
    deployed_amm_addresses: list[str] = field(default_factory=list)
    failures: list[InstanceFailure] = field(default_factory=list)


class DeploymentOrchestrator:
    """Deploys two tokens, then N AMM instances seeded with random liquidity.

    Runs PURGE -> DEPLOY_TOKENS -> DEPLOY_AND_SEED -> EMIT -> DONE. Missing
    contract artifacts and failed contract deployments end the run; a seeding
    failure only drops that instance from the dexes snapshot. Every deployed
    AMM address, seeded or not, is merged into the chain config.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        ledger: LedgerClient,
        store: RegistryPersistence,
        generator: ParameterGenerator | None = None,
        seeder: LiquiditySeeder | None = None,
        gas_ceiling: int = DEFAULT_GAS_CEILING,
    ) -> None:
        """Initialize orchestrator with its collaborators.

        Args:
            registry: Source of Token and AMM contract artifacts
            ledger: Ledger client owning the funding account
            store: Registry persistence for dexes snapshot and config
            generator: Parameter generator (fresh unseeded one by default)
            seeder: Liquidity seeder (built from ledger and gas_ceiling by default)
            gas_ceiling: Gas limit for the initial addLiquidity transaction
        """
        self.registry = registry
        self.ledger = ledger
        self.store = store
        self.generator = generator or ParameterGenerator()
        self.seeder = seeder or LiquiditySeeder(ledger, gas_ceiling=gas_ceiling)

        self._handlers: dict[
            DeployPhase, Callable[[_RunState], Awaitable[DeployPhase]]
        ] = {
            DeployPhase.PURGE: self._purge,
            DeployPhase.DEPLOY_TOKENS: self._deploy_tokens,
            DeployPhase.DEPLOY_AND_SEED: self._deploy_and_seed,
            DeployPhase.EMIT: self._emit,
        }

    async def run(
        self,
        token_specs: list[TokenSpec],
        instance_count: int,
        base_amount: float | Decimal,
    ) -> DeploymentResult:
        """Execute one full deployment run.

        Args:
            token_specs: Exactly two token specs; the first is token1
            instance_count: Number of AMM instances to deploy
            base_amount: Base liquidity per token in whole tokens

        Returns:
            DeploymentResult with records, deployed addresses and failures

        Raises:
            SetupError: On invalid input or missing contract artifacts
            DeployError: If a contract deployment fails
            PersistenceError: If registry files cannot be read or written
        """
        if len(token_specs) != 2:
            raise SetupError(f"Exactly two tokens are required, got {len(token_specs)}")
        if instance_count < 0:
            raise SetupError(f"instance_count must be >= 0, got {instance_count}")
        base = Decimal(str(base_amount))
        if base <= 0:
            raise SetupError(f"base_amount must be positive, got {base}")

        state = _RunState(
            token_specs=list(token_specs),
            instance_count=instance_count,
            base_amount=base,
        )

        try:
            state.chain_id = await self.ledger.chain_id()
        except LedgerError as e:
            raise SetupError(f"Cannot determine chain id: {e}") from e

        logger.info(
            "Starting deployment",
            chain_id=state.chain_id,
            account=self.ledger.account,
            instance_count=instance_count,
            base_amount=str(state.base_amount),
        )

        phase = DeployPhase.PURGE
        while phase is not DeployPhase.DONE:
            logger.debug("Entering phase", phase=phase.value)
            phase = await self._handlers[phase](state)

        result = DeploymentResult(
            chain_id=state.chain_id,
            tokens=[
                DeployedToken(symbol=spec.symbol, address=handle.address)
                for spec, handle in zip(state.token_specs, state.token_handles)
            ],
            records=state.records,
            deployed_amm_addresses=state.deployed_amm_addresses,
            failures=state.failures,
        )

        logger.info(
            "Deployment completed",
            chain_id=result.chain_id,
            recorded=len(result.records),
            deployed=len(result.deployed_amm_addresses),
            failed=[f.name for f in result.failures],
        )
        return result

    async def _purge(self, state: _RunState) -> DeployPhase:
        self.store.purge_dexes()
        return DeployPhase.DEPLOY_TOKENS

    async def _deploy_tokens(self, state: _RunState) -> DeployPhase:
        for spec in state.token_specs:
            source = self.registry.load_contract_source(TOKEN_KIND)
            logger.info("Deploying token", name=spec.name, symbol=spec.symbol)

            handle = await self._deploy(
                source, spec.name, spec.symbol, to_base_units(spec.supply)
            )
            state.token_handles.append(handle)
            logger.info("Token deployed", symbol=spec.symbol, address=handle.address)

        return DeployPhase.DEPLOY_AND_SEED

    async def _deploy_and_seed(self, state: _RunState) -> DeployPhase:
        source = self.registry.load_contract_source(AMM_KIND)
        logger.info("Deploying AMM contracts", base_amount=str(state.base_amount))

        for index in range(state.instance_count):
            outcome = await self._deploy_instance(state, index, source)
            logger.debug("Instance finished", index=index, outcome=outcome.value)

        return DeployPhase.EMIT

    async def _deploy_instance(
        self, state: _RunState, index: int, source: ContractSource
    ) -> InstanceOutcome:
        name = f"AMM_{index + 1}"
        token1, token2 = state.token_handles
        spec1, spec2 = state.token_specs

        logger.info(
            "Deploying AMM contract",
            instance=name,
            token1=token1.address,
            token2=token2.address,
        )
        amm = await self._deploy(source, token1.address, token2.address)
        state.deployed_amm_addresses.append(amm.address)
        logger.info("AMM contract deployed", instance=name, address=amm.address)

        params = self.generator.generate(state.base_amount)
        logger.info(
            "Random parameters",
            instance=name,
            amount1=str(params.amount1),
            amount2=str(params.amount2),
            maker_fee=params.maker_fee,
            taker_fee=params.taker_fee,
        )

        outcome = await self.seeder.seed(
            amm, token1, token2, params.amount1_units, params.amount2_units
        )

        if isinstance(outcome, SeedFailure):
            logger.error(
                "Error adding initial liquidity, skipping instance",
                index=index,
                instance=name,
                address=amm.address,
                step=outcome.step,
                error=outcome.detail,
            )
            state.failures.append(
                InstanceFailure(
                    index=index,
                    name=name,
                    amm_address=amm.address,
                    step=outcome.step,
                    error=outcome.detail,
                )
            )
            return InstanceOutcome.SKIPPED

        state.records.append(
            AmmRecord(
                name=name,
                amm_address=amm.address,
                token_in=token1.address,
                token_in_symbol=spec1.symbol,
                token_out=token2.address,
                token_out_symbol=spec2.symbol,
                price=self.generator.generate_display_price(),
                liquidity=LiquidityAmounts(
                    token1=format_units(params.amount1_units),
                    token2=format_units(params.amount2_units),
                ),
                fee=FeePair(maker=params.maker_fee, taker=params.taker_fee),
            )
        )
        logger.info("Instance recorded", instance=name, shares=outcome.shares_display)
        return InstanceOutcome.RECORDED

    async def _emit(self, state: _RunState) -> DeployPhase:
        self.store.persist_dexes(state.records)
        self.store.merge_config(
            state.chain_id,
            {
                spec.symbol: handle.address
                for spec, handle in zip(state.token_specs, state.token_handles)
            },
            state.deployed_amm_addresses,
        )
        return DeployPhase.DONE

    async def _deploy(self, source: ContractSource, *args) -> ContractHandle:
        try:
            return await self.ledger.deploy(source, *args)
        except LedgerError as e:
            logger.error("Contract deployment failed", kind=source.kind, error=str(e))
            raise DeployError(f"Deploying {source.kind} failed: {e}") from e


def build_orchestrator(
    settings: AppSettings, ledger: LedgerClient
) -> DeploymentOrchestrator:
    """Assemble an orchestrator from settings and a connected ledger client."""
    rng = random.Random(settings.random_seed)
    if settings.random_seed is not None:
        logger.info("Using fixed random seed", seed=settings.random_seed)

    return DeploymentOrchestrator(
        registry=FileContractRegistry(settings.artifacts_dir),
        ledger=ledger,
        store=JsonRegistryStore(settings.dexes_path, settings.config_path),
        generator=ParameterGenerator(rng),
        gas_ceiling=settings.gas_ceiling,
    )


async def main() -> None:
    """Main entry point for the deployment run."""
    parser = argparse.ArgumentParser(description="AMM deployment and seeding")
    parser.add_argument(
        "--config", default="configs/localhost.yaml", help="Configuration file path"
    )
    parser.add_argument("--network", default="localhost", help="Target network name")

    args = parser.parse_args()

    try:
        settings = load_settings(args.network, args.config)
        logger.info("Settings loaded", network=args.network, config=args.config)

        ledger = await Web3LedgerClient.connect(
            settings.rpc_url,
            account_index=settings.account_index,
            receipt_timeout=settings.receipt_timeout_seconds,
        )

        orchestrator = build_orchestrator(settings, ledger)
        await orchestrator.run(
            settings.tokens, settings.instance_count, settings.base_amount
        )

    except Exception as e:
        logger.error("Deployment failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)

    await launch_downstream(settings.server_command)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
