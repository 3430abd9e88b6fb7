"""Configuration helpers for the order desk."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .courier.client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from .dispatch.service import DEFAULT_NOTE
from .models import DEFAULT_DELIVERY_CHARGES, DeliveryRegion

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text) if text.strip() else {}
        else:
            data = yaml.safe_load(text) or {}
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not parse configuration file '{file_path}': {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


@dataclass
class CourierSettings:
    api_key: str = ""
    secret_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT
    rate_limit_per_minute: Optional[float] = None
    default_note: str = DEFAULT_NOTE


@dataclass
class DispatchSettings:
    allow_simulated: bool = True
    concurrent: bool = False
    max_workers: Optional[int] = None


@dataclass
class Settings:
    storage_path: Optional[Path] = None
    courier: CourierSettings = field(default_factory=CourierSettings)
    dispatch: DispatchSettings = field(default_factory=DispatchSettings)
    delivery_charges: Dict[DeliveryRegion, float] = field(
        default_factory=lambda: dict(DEFAULT_DELIVERY_CHARGES)
    )


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"Configuration section '{name}' must be a mapping")
    return section


def _optional_number(value: Any, name: str, cast=float):
    if value in (None, ""):
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Configuration value '{name}' must be numeric, got {value!r}") from exc


_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def _flag(value: Any, name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Configuration value '{name}' must be true or false, got {value!r}")


def settings_from_mapping(config: Mapping[str, Any], *, base_dir: Optional[Path] = None) -> Settings:
    """Build typed settings from a loaded configuration mapping.

    A relative ``storage.path`` is resolved against ``base_dir`` (the
    directory of the configuration file).
    """

    storage = _section(config, "storage")
    courier = _section(config, "courier")
    dispatch = _section(config, "dispatch")
    charges = _section(config, "delivery_charges")

    storage_path: Optional[Path] = None
    if storage.get("path"):
        storage_path = Path(str(storage["path"])).expanduser()
        if base_dir is not None and not storage_path.is_absolute():
            storage_path = base_dir / storage_path

    delivery_charges = dict(DEFAULT_DELIVERY_CHARGES)
    for region_name, amount in charges.items():
        try:
            region = DeliveryRegion(region_name)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown delivery region '{region_name}'") from exc
        charge = _optional_number(amount, f"delivery_charges.{region_name}")
        if charge is None:
            raise ConfigurationError(f"Delivery charge for '{region_name}' is empty")
        delivery_charges[region] = charge

    timeout = _optional_number(courier.get("timeout_seconds"), "courier.timeout_seconds")
    max_workers = _optional_number(dispatch.get("max_workers"), "dispatch.max_workers", cast=int)
    if max_workers is not None and max_workers < 1:
        raise ConfigurationError(f"Configuration value 'dispatch.max_workers' must be at least 1, got {max_workers}")

    return Settings(
        storage_path=storage_path,
        courier=CourierSettings(
            api_key=str(courier.get("api_key") or ""),
            secret_key=str(courier.get("secret_key") or ""),
            base_url=str(courier.get("base_url") or DEFAULT_BASE_URL),
            timeout_seconds=timeout if timeout is not None else DEFAULT_TIMEOUT,
            rate_limit_per_minute=_optional_number(
                courier.get("rate_limit_per_minute"), "courier.rate_limit_per_minute"
            ),
            default_note=str(courier.get("default_note") or DEFAULT_NOTE),
        ),
        dispatch=DispatchSettings(
            allow_simulated=_flag(dispatch.get("allow_simulated"), "dispatch.allow_simulated", True),
            concurrent=_flag(dispatch.get("concurrent"), "dispatch.concurrent", False),
            max_workers=max_workers,
        ),
        delivery_charges=delivery_charges,
    )


def load_settings(path: str | Path | None) -> Settings:
    """Load :class:`Settings` from ``path``; defaults when no path is given."""

    if path is None:
        LOGGER.debug("No configuration file given, using defaults")
        return Settings()
    file_path = Path(path)
    return settings_from_mapping(load_configuration(file_path), base_dir=file_path.resolve().parent)


__all__ = [
    "ConfigurationError",
    "CourierSettings",
    "DispatchSettings",
    "Settings",
    "load_configuration",
    "load_settings",
    "settings_from_mapping",
]
