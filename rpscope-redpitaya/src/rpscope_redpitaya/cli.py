"""Command-line interface for rpscope-redpitaya.

Drives a Red Pitaya through the control worker, or serves an emulator.

Usage:
    # Send command tokens in order, printing data replies
    rpscope send --host 192.168.1.5 --port 5000 oscillo/start oscillo/data oscillo/stop

    # Headless oscilloscope: start acquisition (and the sine generator) and
    # print the bounds of each frame
    rpscope monitor --config lab.yaml --generator --frames 20

    # Serve an emulated instrument on localhost:5000
    rpscope emulate --port 5000 --samples 1024
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from rpscope_core import CommandToken, DeviceConnectionError

from rpscope_redpitaya.bridge import BridgeQueues, PresentationBridge
from rpscope_redpitaya.config import DeviceConfig, load_config
from rpscope_redpitaya.emulator import BUFFER_SIZE, make_emulator
from rpscope_redpitaya.server import EmulatorServer
from rpscope_redpitaya.worker import ControlWorker, create_worker

logger = logging.getLogger(__name__)

# Used when the config leaves reply_timeout unset, so a query the device
# never answers cannot hang the CLI.
_DEFAULT_REPLY_TIMEOUT = 5.0


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _config_from_args(args: argparse.Namespace) -> DeviceConfig:
    return load_config(
        args.config,
        host=args.host,
        port=args.port,
        read_timeout=args.read_timeout,
        reply_timeout=args.reply_timeout,
    )


def _connect(config: DeviceConfig) -> tuple[ControlWorker, PresentationBridge]:
    queues = BridgeQueues()
    worker = create_worker(config, queues)
    bridge = PresentationBridge(
        queues, reply_timeout=config.reply_timeout or _DEFAULT_REPLY_TIMEOUT
    )
    worker.start()
    return worker, bridge


def cmd_send(args: argparse.Namespace) -> int:
    """Send command tokens to the instrument in order."""
    worker, bridge = _connect(_config_from_args(args))
    try:
        for token in args.tokens:
            if token == CommandToken.OSCILLO_DATA:
                reply = bridge.query_data()
                print(reply if reply is not None else "(no reply)")
            else:
                bridge.send(token)
    finally:
        worker.stop()
    return 0


def cmd_monitor(args: argparse.Namespace) -> int:
    """Run a headless presentation loop."""
    worker, bridge = _connect(_config_from_args(args))
    bridge.set_acquisition(True)
    if args.generator:
        bridge.set_generator(True)

    frame = 0
    try:
        while args.frames is None or frame < args.frames:
            waveform = bridge.frame()
            if waveform is None:
                print(f"frame {frame}: no data")
            else:
                print(
                    f"frame {frame}: {len(waveform)} samples, "
                    f"min {waveform.y_min:.4f}, max {waveform.y_max:.4f}"
                )
            frame += 1
            time.sleep(args.interval)
    except KeyboardInterrupt:
        pass
    finally:
        bridge.shutdown()
        worker.stop()
    return 0


def cmd_emulate(args: argparse.Namespace) -> int:
    """Serve an emulated instrument until interrupted."""
    try:
        server = EmulatorServer(make_emulator(args.samples), host=args.host, port=args.port)
    except OSError as exc:
        logger.error("Cannot listen on %s:%d: %s", args.host, args.port, exc)
        return 1

    host, port = server.address
    print(f"Emulator listening on {host}:{port} (Ctrl-C to stop)")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    return 0


def _add_device_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", "-c", help="YAML file with a 'device' mapping")
    parser.add_argument("--host", help="Instrument host (overrides config)")
    parser.add_argument("--port", type=int, help="Instrument port (overrides config)")
    parser.add_argument(
        "--read-timeout", type=float,
        help="Timeout for each reply line in seconds (default: wait forever)"
    )
    parser.add_argument(
        "--reply-timeout", type=float,
        help=f"Wait for a data reply in seconds (default: {_DEFAULT_REPLY_TIMEOUT})"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpscope",
        description="Red Pitaya remote control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # send command
    send_parser = subparsers.add_parser("send", help="Send command tokens in order")
    _add_device_arguments(send_parser)
    send_parser.add_argument(
        "tokens", nargs="+", metavar="TOKEN",
        help=f"Command tokens ({', '.join(t.value for t in CommandToken)})"
    )

    # monitor command
    monitor_parser = subparsers.add_parser("monitor", help="Poll and summarize waveform data")
    _add_device_arguments(monitor_parser)
    monitor_parser.add_argument(
        "--frames", type=int,
        help="Number of frames to run (default: until interrupted)"
    )
    monitor_parser.add_argument(
        "--interval", type=float, default=0.5,
        help="Delay between frames in seconds (default: 0.5)"
    )
    monitor_parser.add_argument(
        "--generator", action="store_true",
        help="Also enable the sine generator"
    )

    # emulate command
    emulate_parser = subparsers.add_parser("emulate", help="Serve an emulated instrument")
    emulate_parser.add_argument(
        "--host", default="127.0.0.1",
        help="Bind address (default: 127.0.0.1)"
    )
    emulate_parser.add_argument(
        "--port", type=int, default=5000,
        help="Bind port (default: 5000)"
    )
    emulate_parser.add_argument(
        "--samples", type=int, default=BUFFER_SIZE,
        help=f"Samples per data reply (default: {BUFFER_SIZE})"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    commands = {
        "send": cmd_send,
        "monitor": cmd_monitor,
        "emulate": cmd_emulate,
    }

    try:
        return commands[args.command](args)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    except DeviceConnectionError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
