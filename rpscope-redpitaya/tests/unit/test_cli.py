"""Tests for the rpscope command-line interface."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from rpscope_redpitaya.cli import main
from rpscope_redpitaya.emulator import RedPitayaEmulator, make_emulator
from rpscope_redpitaya.server import EmulatorServer


@pytest.fixture
def emulator() -> RedPitayaEmulator:
    return make_emulator(samples=8)


@pytest.fixture
def server(emulator: RedPitayaEmulator) -> Iterator[EmulatorServer]:
    # stop() returns once the client's remaining lines have been handled,
    # so tests stop the server before inspecting emulator.commands.
    server = EmulatorServer(emulator, port=0)
    server.start()
    try:
        yield server
    finally:
        server.stop()


def _device_args(server: EmulatorServer) -> list[str]:
    host, port = server.address
    return ["--host", host, "--port", str(port), "--read-timeout", "5", "--reply-timeout", "5"]


class TestSend:
    """Tests for the send command."""

    def test_sends_tokens_in_order(
        self,
        server: EmulatorServer,
        emulator: RedPitayaEmulator,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = main(["send", *_device_args(server), "oscillo/start", "oscillo/data", "oscillo/stop"])
        server.stop()

        assert code == 0
        assert capsys.readouterr().out.strip() == "{" + ",".join(["0.0"] * 8) + "}"
        assert emulator.commands == ["ACQ:START", "ACQ:SOUR1:DATA?", "ACQ:STOP"]

    def test_data_without_start_prints_no_reply(
        self,
        server: EmulatorServer,
        emulator: RedPitayaEmulator,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        host, port = server.address
        code = main(
            ["send", "--host", host, "--port", str(port), "--reply-timeout", "0.2", "oscillo/data"]
        )
        server.stop()

        assert code == 0
        assert "(no reply)" in capsys.readouterr().out
        assert emulator.commands == []

    def test_unknown_token_is_dropped(
        self, server: EmulatorServer, emulator: RedPitayaEmulator
    ) -> None:
        code = main(["send", *_device_args(server), "generator/sinc", "generator/wobble"])
        server.stop()

        assert code == 0
        assert emulator.commands == ["OUTPUT1:FUNC sine"]

    def test_config_file(
        self, server: EmulatorServer, emulator: RedPitayaEmulator, tmp_path: Path
    ) -> None:
        host, port = server.address
        path = tmp_path / "lab.yaml"
        path.write_text(f"device:\n  host: {host}\n  port: {port}\n", encoding="utf-8")

        code = main(["send", "--config", str(path), "generator/start"])
        server.stop()

        assert code == 0
        assert emulator.commands == ["OUTPUT1:STATE ON"]


class TestMonitor:
    """Tests for the monitor command."""

    def test_frames_printed_and_device_stopped(
        self,
        server: EmulatorServer,
        emulator: RedPitayaEmulator,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = main(
            ["monitor", *_device_args(server), "--frames", "2", "--interval", "0", "--generator"]
        )
        server.stop()

        assert code == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines == [
            "frame 0: 8 samples, min -1.0000, max 1.0000",
            "frame 1: 8 samples, min -1.0000, max 1.0000",
        ]
        assert emulator.commands[-2:] == ["ACQ:STOP", "OUTPUT1:STATE OFF"]
        assert not emulator.is_acquiring
        assert not emulator.output_enabled

    def test_frames_without_generator_are_flat(
        self,
        server: EmulatorServer,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = main(["monitor", *_device_args(server), "--frames", "1", "--interval", "0"])

        assert code == 0
        assert capsys.readouterr().out.strip() == "frame 0: 8 samples, min 0.0000, max 0.0000"


class TestErrors:
    """Tests for exit codes on failure."""

    def test_no_command(self) -> None:
        assert main([]) == 1

    def test_unreachable_device(self) -> None:
        server = EmulatorServer(make_emulator(), port=0)
        host, port = server.address
        server.stop()

        assert main(["send", "--host", host, "--port", str(port), "oscillo/start"]) == 1

    def test_missing_address(self) -> None:
        assert main(["send", "oscillo/start"]) == 1

    def test_missing_config_file(self, tmp_path: Path) -> None:
        assert main(["send", "--config", str(tmp_path / "missing.yaml"), "oscillo/start"]) == 1

    @pytest.mark.parametrize(
        "device",
        [
            "  host: 127.0.0.1\n  port: 5000\n  connect_timeout: fast\n",
            "  host: 123\n  port: 5000\n",
            "  host: [unclosed\n",
        ],
    )
    def test_invalid_config_file(self, tmp_path: Path, device: str) -> None:
        path = tmp_path / "lab.yaml"
        path.write_text("device:\n" + device, encoding="utf-8")

        assert main(["send", "--config", str(path), "generator/start"]) == 1
