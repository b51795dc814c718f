# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""End-to-end tests for ``run_analysis`` against a fake ctrace and socat."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from ctbridge.capability import NATIVE_STATUS, CapabilityStatus
from ctbridge.config import BridgeConfig, TransportMode
from ctbridge.errors import BridgeSetupError
from ctbridge.orchestrator import ANALYSIS_FLAGS, build_analysis_args, preflight, run_analysis
from ctbridge.platform import wsl_shell
from ctbridge.session import acquire_session, bridged_session_active
from ctbridge.transport import BridgedStrategy, DirectStrategy

MISSING_UTILITY = CapabilityStatus(
    environment_available=True,
    distribution_present=True,
    bridge_utility_present=False,
    message="socat is not installed inside WSL",
    remediation="Run: ctbridge install-bridge",
)


class ReadyProber:
    """Prober reporting a ready Linux layer."""

    def __init__(self, statuses: list[CapabilityStatus] | None = None, *, installs: bool = True) -> None:
        self._statuses = list(statuses or [NATIVE_STATUS])
        self._installs = installs
        self.install_calls = 0

    def probe(self) -> CapabilityStatus:
        if len(self._statuses) > 1:
            return self._statuses.pop(0)
        return self._statuses[0]

    def install_bridge_utility(self) -> bool:
        self.install_calls += 1
        return self._installs


def _pid_gone(pidfile: Path) -> bool:
    pid = int(pidfile.read_text(encoding="utf-8"))
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    return False


@pytest.mark.asyncio
async def test_missing_layer_short_circuits_before_any_process(
    dev_root: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def missing_wsl(args, *, options=None):  # noqa: ANN001
        raise FileNotFoundError(args[0])

    async def fail_establish(self, session):  # noqa: ANN001
        raise AssertionError("bridge must not be established")

    monkeypatch.setattr("ctbridge.capability.run_command", missing_wsl)
    monkeypatch.setattr(BridgedStrategy, "establish", fail_establish)
    config = BridgeConfig(transport=TransportMode.BRIDGED, dev_root=dev_root)

    result = await run_analysis(["--input=main.c"], config=config, strategy=BridgedStrategy(config, wsl_shell()))

    assert not result.success
    assert "WSL is not installed" in result.error
    assert "remediation" in result.error
    assert "wsl --install" in result.error
    assert not bridged_session_active()


@pytest.mark.asyncio
async def test_missing_binary_reports_searched_path(
    tmp_path: Path,
    fake_socat: Path,
    socket_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fail_establish(self, session):  # noqa: ANN001
        raise AssertionError("bridge must not be established")

    monkeypatch.setattr(BridgedStrategy, "establish", fail_establish)
    empty_root = tmp_path / "empty"
    (empty_root / "bin").mkdir(parents=True)
    (empty_root / "bin" / "README").write_text("placeholder", encoding="utf-8")
    config = BridgeConfig(
        transport=TransportMode.BRIDGED,
        dev_root=empty_root,
        socket_path=str(socket_dir / "ctrace.sock"),
        linux_prefix=[],
    )

    result = await run_analysis(
        ["--input=main.c"],
        config=config,
        strategy=BridgedStrategy(config, wsl_shell(())),
        prober=ReadyProber(),
    )

    assert not result.success
    assert str(empty_root / "bin" / "ctrace") in result.error
    assert "README" in result.error


@pytest.mark.asyncio
async def test_direct_success(direct_config: BridgeConfig, direct_strategy: DirectStrategy) -> None:
    chunks: list[str] = []

    result = await run_analysis(["--input=main.c"], config=direct_config, strategy=direct_strategy, on_chunk=chunks.append)

    assert result.success
    assert result.output == "ok"
    assert "".join(chunks) == "ok"
    assert result.to_dict() == {"success": True, "output": "ok"}


@pytest.mark.asyncio
async def test_bridged_success_removes_socket(
    bridged_config: BridgeConfig,
    bridged_strategy: BridgedStrategy,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    pidfile = tmp_path / "ctrace.pid"
    monkeypatch.setenv("FAKE_CTRACE_PIDFILE", str(pidfile))
    chunks: list[str] = []

    result = await run_analysis(
        ["--input=main.c"],
        config=bridged_config,
        strategy=bridged_strategy,
        prober=ReadyProber(),
        on_chunk=chunks.append,
    )

    assert result.success, result.error
    assert result.output == "ok"
    assert "".join(chunks) == "ok"
    assert not Path(bridged_config.socket_path).exists()
    assert _pid_gone(pidfile)
    assert not bridged_session_active()


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", [TransportMode.DIRECT, TransportMode.BRIDGED])
async def test_nonzero_exit_fails_after_partial_output(
    mode: TransportMode,
    request: pytest.FixtureRequest,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("FAKE_CTRACE_OUTPUT", "partial")
    monkeypatch.setenv("FAKE_CTRACE_EXIT", "2")
    monkeypatch.setenv("FAKE_CTRACE_STDERR", "analysis aborted")
    name = "direct" if mode is TransportMode.DIRECT else "bridged"
    config = request.getfixturevalue(f"{name}_config")
    strategy = request.getfixturevalue(f"{name}_strategy")
    chunks: list[str] = []

    result = await run_analysis(
        ["--input=main.c"],
        config=config,
        strategy=strategy,
        prober=ReadyProber(),
        on_chunk=chunks.append,
    )

    assert not result.success
    assert result.exit_code == 2
    assert "exited with code 2" in result.error
    assert "".join(chunks) == "partial"
    assert result.output == "partial"
    assert "analysis aborted" in result.stderr


@pytest.mark.asyncio
async def test_output_is_identical_across_transports(
    direct_config: BridgeConfig,
    direct_strategy: DirectStrategy,
    bridged_config: BridgeConfig,
    bridged_strategy: BridgedStrategy,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("FAKE_CTRACE_OUTPUT", "{\"runs\": [|{\"results\": []}|]}\n")
    monkeypatch.setenv("FAKE_CTRACE_DELAY", "0.05")

    direct = await run_analysis(["--input=main.c"], config=direct_config, strategy=direct_strategy)
    bridged = await run_analysis(
        ["--input=main.c"],
        config=bridged_config,
        strategy=bridged_strategy,
        prober=ReadyProber(),
    )

    assert direct.success and bridged.success
    assert direct.output == bridged.output == "{\"runs\": [{\"results\": []}]}\n"


@pytest.mark.asyncio
async def test_arguments_reach_the_tool(
    direct_config: BridgeConfig,
    direct_strategy: DirectStrategy,
    bridged_config: BridgeConfig,
    bridged_strategy: BridgedStrategy,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    args_file = tmp_path / "args.json"
    monkeypatch.setenv("FAKE_CTRACE_ARGS_FILE", str(args_file))
    args = ["--input=src/main.c", "--static", "--sarif-format"]

    await run_analysis(args, config=direct_config, strategy=direct_strategy)
    direct_args = json.loads(args_file.read_text(encoding="utf-8"))
    await run_analysis(args, config=bridged_config, strategy=bridged_strategy, prober=ReadyProber())
    bridged_args = json.loads(args_file.read_text(encoding="utf-8"))

    assert direct_args == args
    assert bridged_args == [*args, "--ipc=socket", f"--ipc-path={bridged_config.socket_path}"]


@pytest.mark.asyncio
async def test_tool_not_launched_when_bridge_never_ready(
    bridged_config: BridgeConfig,
    fake_socat: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    from ctbridge.platform import native_shell

    args_file = tmp_path / "args.json"
    monkeypatch.setenv("FAKE_CTRACE_ARGS_FILE", str(args_file))
    monkeypatch.setenv("FAKE_SOCAT_MODE", "nosocket")
    config = bridged_config.model_copy(update={"bridge_ready_timeout": 0.5})

    result = await run_analysis(
        ["--input=main.c"],
        config=config,
        strategy=BridgedStrategy(config, native_shell()),
        prober=ReadyProber(),
    )

    assert not result.success
    assert "was not ready within" in result.error
    assert not args_file.exists()
    assert not bridged_session_active()


@pytest.mark.asyncio
async def test_tool_exiting_without_connecting_fails(
    bridged_config: BridgeConfig,
    fake_socat: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    from ctbridge.platform import native_shell

    monkeypatch.setenv("FAKE_CTRACE_NO_CONNECT", "1")
    config = bridged_config.model_copy(update={"exit_timeout": 0.5})

    result = await run_analysis(
        ["--input=main.c"],
        config=config,
        strategy=BridgedStrategy(config, native_shell()),
        prober=ReadyProber(),
    )

    assert not result.success
    assert "before opening the transport" in result.error
    assert result.exit_code == 0


@pytest.mark.asyncio
async def test_session_timeout_stops_the_tool(
    direct_config: BridgeConfig,
    dev_root: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    from ctbridge.platform import native_shell

    pidfile = tmp_path / "ctrace.pid"
    monkeypatch.setenv("FAKE_CTRACE_PIDFILE", str(pidfile))
    monkeypatch.setenv("FAKE_CTRACE_HOLD", "30")
    config = direct_config.model_copy(update={"session_timeout": 1.0})

    result = await run_analysis(["--input=main.c"], config=config, strategy=DirectStrategy(config, native_shell()))

    assert not result.success
    assert "did not finish within" in result.error
    assert result.output == "ok"
    assert _pid_gone(pidfile)


@pytest.mark.asyncio
async def test_second_bridged_session_is_rejected(
    bridged_config: BridgeConfig,
    bridged_strategy: BridgedStrategy,
) -> None:
    with acquire_session([], TransportMode.BRIDGED):
        result = await run_analysis(
            ["--input=main.c"],
            config=bridged_config,
            strategy=bridged_strategy,
            prober=ReadyProber(),
        )

    assert not result.success
    assert "already active" in result.error
    assert not bridged_session_active()


@pytest.mark.asyncio
async def test_direct_sessions_ignore_the_bridged_guard(
    direct_config: BridgeConfig,
    direct_strategy: DirectStrategy,
) -> None:
    with acquire_session([], TransportMode.BRIDGED):
        result = await run_analysis(["--input=main.c"], config=direct_config, strategy=direct_strategy)

    assert result.success


@pytest.mark.asyncio
async def test_preflight_installs_missing_utility_when_enabled() -> None:
    prober = ReadyProber([MISSING_UTILITY, NATIVE_STATUS])

    status = await preflight(prober, BridgeConfig(auto_install_bridge=True))

    assert status.ready
    assert prober.install_calls == 1


@pytest.mark.asyncio
async def test_preflight_reports_remediation_without_auto_install() -> None:
    prober = ReadyProber([MISSING_UTILITY])

    with pytest.raises(BridgeSetupError, match="ctbridge install-bridge"):
        await preflight(prober, BridgeConfig())

    assert prober.install_calls == 0


@pytest.mark.asyncio
async def test_preflight_reports_failed_installation() -> None:
    prober = ReadyProber([MISSING_UTILITY], installs=False)

    with pytest.raises(BridgeSetupError, match="not installed"):
        await preflight(prober, BridgeConfig(auto_install_bridge=True))

    assert prober.install_calls == 1


def test_build_analysis_args_maps_windows_paths() -> None:
    strategy = BridgedStrategy(BridgeConfig(), wsl_shell())

    args = build_analysis_args("C:\\work\\demo\\main.c", strategy)

    assert args == ["--input=/mnt/c/work/demo/main.c", *ANALYSIS_FLAGS]
