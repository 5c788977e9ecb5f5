"""Device connection configuration.

The instrument address has no default: it must come from the command line or
from a YAML file.

Example YAML configuration:
    device:
      host: "192.168.1.5"
      port: 5000
      connect_timeout: 5.0
      read_timeout: 2.0
      reply_timeout: 2.5
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml


def _check_timeout(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive")


@dataclass(frozen=True)
class DeviceConfig:
    """Configuration for connecting to a Red Pitaya.

    Attributes:
        host: Instrument host name or IP address.
        port: Instrument SCPI server TCP port.
        connect_timeout: Timeout for establishing the connection in seconds.
        read_timeout: Timeout for a single reply line in seconds. None blocks
            until a line arrives or the connection drops.
        reply_timeout: How long the presentation side waits for a data reply
            in seconds. None waits indefinitely.
    """

    host: str
    port: int
    connect_timeout: float = 5.0
    read_timeout: float | None = None
    reply_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not isinstance(self.host, str):
            raise ValueError(f"host must be a string, got {self.host!r}")
        if not self.host:
            raise ValueError("host must be non-empty")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"port must be an integer, got {self.port!r}")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be in 1-65535, got {self.port}")
        _check_timeout("connect_timeout", self.connect_timeout)
        if self.read_timeout is not None:
            _check_timeout("read_timeout", self.read_timeout)
        if self.reply_timeout is not None:
            _check_timeout("reply_timeout", self.reply_timeout)

    @property
    def address(self) -> str:
        """Return the ``host:port`` address string."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_address(cls, address: str, **kwargs: Any) -> DeviceConfig:
        """Create config from a ``host:port`` string.

        Args:
            address: Instrument address (e.g., "192.168.1.5:5000").
            **kwargs: Additional configuration options.

        Returns:
            DeviceConfig instance.

        Raises:
            ValueError: If the address has no port or the port is not numeric.
        """
        host, sep, port = address.rpartition(":")
        if not sep or not host:
            raise ValueError(f"Expected 'host:port', got {address!r}")
        try:
            port_num = int(port)
        except ValueError:
            raise ValueError(f"Invalid port in address {address!r}") from None
        return cls(host=host, port=port_num, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceConfig:
        """Create config from a parsed ``device`` mapping.

        Args:
            data: Mapping with at least ``host`` and ``port`` keys.

        Returns:
            DeviceConfig instance.

        Raises:
            ValueError: If a required key is missing or a key is unknown.
        """
        known = {"host", "port", "connect_timeout", "read_timeout", "reply_timeout"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown device config keys: {sorted(unknown)}")
        for key in ("host", "port"):
            if key not in data:
                raise ValueError(f"Device config is missing required key '{key}'")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> DeviceConfig:
        """Load config from a YAML file with a top-level ``device`` mapping.

        Args:
            path: Path to the YAML file.

        Returns:
            DeviceConfig instance.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is empty or malformed.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ValueError(f"Configuration file is not valid YAML: {path}: {exc}") from exc

        if data is None:
            raise ValueError(f"Configuration file is empty: {path}")
        if not isinstance(data, dict) or not isinstance(data.get("device"), dict):
            raise ValueError(f"Configuration file has no 'device' mapping: {path}")

        return cls.from_dict(data["device"])


def load_config(
    path: str | Path | None = None,
    *,
    host: str | None = None,
    port: int | None = None,
    **overrides: Any,
) -> DeviceConfig:
    """Build a config from an optional file plus explicit overrides.

    Values given as arguments win over the file. Overrides that are None are
    ignored, so argparse defaults can be passed straight through.

    Args:
        path: Optional YAML configuration file.
        host: Host override.
        port: Port override.
        **overrides: Other DeviceConfig fields.

    Returns:
        DeviceConfig instance.

    Raises:
        FileNotFoundError: If *path* is given but does not exist.
        ValueError: If host or port end up missing, or a value is invalid.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    if path is not None:
        config = DeviceConfig.from_yaml(path)
        if host is not None:
            values["host"] = host
        if port is not None:
            values["port"] = port
        return replace(config, **values)

    if host is None or port is None:
        raise ValueError("Device host and port must be supplied (or use a config file)")
    return DeviceConfig(host=host, port=port, **values)
