"""Red Pitaya session, control worker and emulator for rpscope.

This package drives a Red Pitaya oscilloscope/signal generator over its
line-based SCPI server and bridges it to a presentation layer through two
queues.

Modules:
    session: Device session with the acquisition and generator vocabulary.
    worker: Control worker that serializes all device traffic.
    bridge: Presentation-side queues, waveform parsing and toggles.
    config: Device address and timeout configuration.
    emulator: In-process emulator for testing without hardware.
    server: TCP server for exposing emulators to external tools.
    cli: ``rpscope`` command-line entry point.

Example:
    Connect to a real instrument::

        from rpscope_redpitaya import (
            BridgeQueues, DeviceConfig, PresentationBridge, create_worker,
        )

        queues = BridgeQueues()
        worker = create_worker(DeviceConfig("192.168.1.5", 5000), queues)
        worker.start()

        bridge = PresentationBridge(queues, reply_timeout=1.0)
        bridge.set_acquisition(True)
        waveform = bridge.frame()

    Use an emulator for testing::

        from rpscope_redpitaya import make_emulator, EmulatorServer

        server = EmulatorServer(make_emulator(), port=0)
        server.start()
"""

from rpscope_redpitaya.bridge import BridgeQueues, PresentationBridge, Waveform
from rpscope_redpitaya.config import DeviceConfig, load_config
from rpscope_redpitaya.emulator import (
    BUFFER_SIZE,
    WAVEFORMS,
    RedPitayaEmulator,
    RedPitayaEmulatorConfig,
    make_emulator,
)
from rpscope_redpitaya.server import EmulatorServer
from rpscope_redpitaya.session import RedPitayaSession, create_session
from rpscope_redpitaya.worker import ControlWorker, WorkerState, create_worker

__all__ = [
    # Session
    "RedPitayaSession",
    "create_session",
    # Worker
    "ControlWorker",
    "WorkerState",
    "create_worker",
    # Bridge
    "BridgeQueues",
    "PresentationBridge",
    "Waveform",
    # Config
    "DeviceConfig",
    "load_config",
    # Emulator
    "BUFFER_SIZE",
    "WAVEFORMS",
    "RedPitayaEmulator",
    "RedPitayaEmulatorConfig",
    "make_emulator",
    # Server
    "EmulatorServer",
]
