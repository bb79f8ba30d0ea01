"""Tests for the command-line entry point."""

import json
import sys
import tempfile
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from dexdeploy.core.interfaces import ContractHandle, LedgerClient
from dexdeploy.core.types import ContractSource
from dexdeploy.runner.orchestrator import main

CHAIN_ID = 31337
ACCOUNT = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SERVER_COMMAND = ["node", "server.js"]


class FakeHandle(ContractHandle):
    """Deployed contract that always succeeds."""

    def __init__(self, address: str):
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def approve(self, spender: str, amount: int) -> str:
        return f"tx-approve-{self._address}"

    async def add_liquidity(self, amount1: int, amount2: int, gas_ceiling: int) -> str:
        return f"tx-liquidity-{self._address}"

    async def query(self, method: str, *args: Any) -> Any:
        return 10**20


class FakeLedger(LedgerClient):
    """Ledger assigning sequential contract addresses."""

    def __init__(self):
        self.deployed: list[str] = []

    @property
    def account(self) -> str:
        return ACCOUNT

    async def chain_id(self) -> int:
        return CHAIN_ID

    async def deploy(self, source: ContractSource, *args: Any) -> ContractHandle:
        address = "0x" + format(len(self.deployed) + 1, "040x")
        self.deployed.append(address)
        return FakeHandle(address)

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        return {"status": 1}


@pytest.fixture
def workdir():
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        abis = root / "abis"
        abis.mkdir()
        for kind in ("Token", "AMM"):
            (abis / f"{kind}.json").write_text(
                json.dumps({"abi": [], "bytecode": "0x6080"}), encoding="utf-8"
            )

        config_file = root / "localhost.yaml"
        config_file.write_text(
            yaml.safe_dump(
                {
                    "rpc_url": "http://127.0.0.1:8545",
                    "artifacts_dir": str(abis),
                    "dexes_path": str(root / "tmp" / "dexes.json"),
                    "config_path": str(root / "tmp" / "config.json"),
                    "instance_count": 2,
                    "random_seed": 11,
                    "server_command": SERVER_COMMAND,
                }
            ),
            encoding="utf-8",
        )
        yield root


async def run_main(workdir: Path, downstream: AsyncMock, ledger: LedgerClient | None = None):
    """Run main() against the workdir config with a fake ledger."""
    argv = ["dexdeploy", "--config", str(workdir / "localhost.yaml"), "--network", "localhost"]

    with patch.object(sys, "argv", argv), patch(
        "dexdeploy.runner.orchestrator.Web3LedgerClient.connect",
        new=AsyncMock(return_value=ledger or FakeLedger()),
    ), patch("dexdeploy.runner.orchestrator.launch_downstream", new=downstream):
        await main()


def downstream_recording_files(workdir: Path, observed: dict[str, bool]) -> AsyncMock:
    """Downstream stand-in noting which registry files exist when it starts."""

    def record_files(command):
        observed["dexes"] = (workdir / "tmp" / "dexes.json").exists()
        observed["config"] = (workdir / "tmp" / "config.json").exists()
        return 0

    return AsyncMock(side_effect=record_files)


class TestMain:
    """Test process-level exit and downstream trigger behavior."""

    @pytest.mark.asyncio
    async def test_success_starts_downstream_after_persist(self, workdir):
        """The server starts only once both registry files are written."""
        observed: dict[str, bool] = {}
        downstream = downstream_recording_files(workdir, observed)

        await run_main(workdir, downstream)

        downstream.assert_awaited_once_with(SERVER_COMMAND)
        assert observed == {"dexes": True, "config": True}

        config = json.loads((workdir / "tmp" / "config.json").read_text(encoding="utf-8"))
        assert len(config[str(CHAIN_ID)]["amm"]["addresses"]) == 2

    @pytest.mark.asyncio
    async def test_missing_token_artifact_exits(self, workdir):
        """A missing Token artifact exits with status 1 and no server."""
        (workdir / "abis" / "Token.json").unlink()
        ledger = FakeLedger()
        downstream = AsyncMock()

        with pytest.raises(SystemExit) as exc_info:
            await run_main(workdir, downstream, ledger)

        assert exc_info.value.code == 1
        downstream.assert_not_awaited()
        assert ledger.deployed == []
        assert not (workdir / "tmp" / "config.json").exists()

    @pytest.mark.asyncio
    async def test_corrupt_config_exits(self, workdir):
        """A corrupt cumulative config exits with status 1 and is left as is."""
        config_path = workdir / "tmp" / "config.json"
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{not json", encoding="utf-8")
        downstream = AsyncMock()

        with pytest.raises(SystemExit) as exc_info:
            await run_main(workdir, downstream)

        assert exc_info.value.code == 1
        downstream.assert_not_awaited()
        assert config_path.read_text(encoding="utf-8") == "{not json"

    @pytest.mark.asyncio
    async def test_fatal_error_skips_downstream(self, workdir):
        """The downstream process is never started after a fatal error."""
        (workdir / "abis" / "AMM.json").unlink()
        downstream = AsyncMock()

        with pytest.raises(SystemExit) as exc_info:
            await run_main(workdir, downstream)

        assert exc_info.value.code == 1
        downstream.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_settings_exit(self, workdir):
        """An unreadable settings file exits before connecting."""
        connect = AsyncMock(return_value=FakeLedger())
        argv = ["dexdeploy", "--config", str(workdir / "missing.yaml")]

        with patch.object(sys, "argv", argv), patch(
            "dexdeploy.runner.orchestrator.Web3LedgerClient.connect", new=connect
        ):
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 1
        connect.assert_not_awaited()
