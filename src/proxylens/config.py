"""Configuration management for proxylens."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from proxylens.payload import DEFAULT_MAX_PLAINTEXT_BYTES

DEFAULT_RENDEZVOUS_DOMAIN = "rendezvous.mypico.org"


@dataclass
class RendezvousConfig:
    """Rendezvous directory configuration."""

    domain: str = DEFAULT_RENDEZVOUS_DOMAIN
    timeout: float = 10.0  # seconds, per request


@dataclass
class QrConfig:
    """Pairing code rendering configuration."""

    error_correction: str = "L"  # L, M, Q or H


@dataclass
class Config:
    """proxylens configuration."""

    log_level: str = "INFO"
    log_file: str | None = None
    max_plaintext_bytes: int = DEFAULT_MAX_PLAINTEXT_BYTES
    rendezvous: RendezvousConfig = field(default_factory=RendezvousConfig)
    qr: QrConfig = field(default_factory=QrConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "proxylens" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return None


def _coerce(convert: Callable[[Any], Any], value: Any, default: Any) -> Any:
    """Convert a config value, keeping the default if it is missing or malformed."""
    if value is None:
        return default
    try:
        return convert(value)
    except (TypeError, ValueError):
        return default


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name)
    return section if isinstance(section, dict) else {}


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    rendezvous_data = _section(data, "rendezvous")
    rendezvous_config = RendezvousConfig(
        domain=rendezvous_data.get("domain", RendezvousConfig.domain),
        timeout=_coerce(float, rendezvous_data.get("timeout"), RendezvousConfig.timeout),
    )

    qr_data = _section(data, "qr")
    qr_config = QrConfig(
        error_correction=str(
            qr_data.get("error_correction", QrConfig.error_correction)
        ).upper(),
    )

    return Config(
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        max_plaintext_bytes=_coerce(
            int, data.get("max_plaintext_bytes"), Config.max_plaintext_bytes
        ),
        rendezvous=rendezvous_config,
        qr=qr_config,
    )
