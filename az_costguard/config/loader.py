"""
Configuration management and loading.

Builds the single immutable run configuration from GitHub Action inputs,
environment variables and an optional YAML settings file.
"""

import math
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from az_costguard.core.parser import USD_TO_EUR_RATE

DEFAULT_LOCATION = "eastus"
DEFAULT_ESTIMATOR = "azure-cost-estimator"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_OUTPUT_PATH = "cost.json"

# Basic mode prices from the catalog only, so no real subscription is needed.
BASIC_MODE_SUBSCRIPTION = "00000000-0000-0000-0000-000000000000"


class ConfigError(ValueError):
    """Raised for missing or invalid configuration. Always fatal."""


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings for one estimation run."""
    subscription_id: str
    location: str = DEFAULT_LOCATION
    deep_scan: bool = False
    terraform_executable: Optional[str] = None
    estimator_executable: str = DEFAULT_ESTIMATOR
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    usd_to_eur_rate: Decimal = USD_TO_EUR_RATE
    output_path: str = DEFAULT_OUTPUT_PATH

    def __post_init__(self):
        """Validate settings."""
        if not self.subscription_id:
            raise ConfigError("subscription_id is required")
        if not self.location:
            raise ConfigError("location is required")
        if not self.estimator_executable:
            raise ConfigError("estimator_executable is required")
        if self.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be > 0")
        if self.usd_to_eur_rate <= 0:
            raise ConfigError("usd_to_eur_rate must be > 0")

    @property
    def mode_description(self) -> str:
        if self.deep_scan:
            return "Enhanced Scan (What-If enabled)"
        return "Diff-only (catalog pricing)"


_SETTINGS_KEYS = {'estimator', 'timeout_seconds', 'usd_to_eur_rate', 'output', 'location'}


def load_settings_file(path: str) -> Dict[str, Any]:
    """Load and validate an optional YAML settings file.

    Args:
        path: Path to YAML settings file

    Returns:
        Dictionary of validated settings (only keys present in the file)

    Raises:
        ConfigError: If the file is missing, empty or invalid
    """
    settings_path = Path(path)
    if not settings_path.exists():
        raise ConfigError(f"Settings file not found: {path}")

    with open(settings_path, 'r', encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in settings file {path}: {e}")

    if not raw:
        raise ConfigError("Settings file is empty")
    if not isinstance(raw, dict):
        raise ConfigError("Settings file must contain a mapping")

    unknown_keys = set(raw.keys()) - _SETTINGS_KEYS
    if unknown_keys:
        raise ConfigError(f"Unknown settings keys: {unknown_keys}")

    settings: Dict[str, Any] = {}
    for key in ('estimator', 'output', 'location'):
        if key in raw:
            if not isinstance(raw[key], str) or not raw[key].strip():
                raise ConfigError(f"'{key}' must be a non-empty string")
            settings[key] = raw[key].strip()

    if 'timeout_seconds' in raw:
        settings['timeout_seconds'] = _positive_number(raw['timeout_seconds'], 'timeout_seconds')
    if 'usd_to_eur_rate' in raw:
        settings['usd_to_eur_rate'] = positive_decimal(raw['usd_to_eur_rate'], 'usd_to_eur_rate')

    return settings


def load_run_config(
    env: Optional[Mapping[str, str]] = None,
    config_path: Optional[str] = None
) -> RunConfig:
    """Build the run configuration once at startup.

    Settings file values are defaults; environment variables override them.

    Args:
        env: Environment mapping (defaults to os.environ)
        config_path: Optional YAML settings file

    Returns:
        Validated RunConfig

    Raises:
        ConfigError: If a required value is missing or invalid
    """
    env = os.environ if env is None else env
    settings = load_settings_file(config_path) if config_path else {}

    deep_scan = env.get('INPUT_DEEP-SCAN', '').strip().lower() == 'true'
    location = _env(env, 'INPUT_LOCATION') or settings.get('location', DEFAULT_LOCATION)

    if deep_scan:
        subscription_id = _env(env, 'AZURE_SUBSCRIPTION_ID') or _env(env, 'INPUT_SUBSCRIPTION-ID')
        if not subscription_id:
            raise ConfigError(
                "Azure Subscription ID is required. Set AZURE_SUBSCRIPTION_ID "
                "environment variable or use the subscription-id input."
            )
    else:
        subscription_id = _env(env, 'AZCG_SUBSCRIPTION') or BASIC_MODE_SUBSCRIPTION
        location = _env(env, 'AZCG_LOCATION') or location

    timeout = settings.get('timeout_seconds', DEFAULT_TIMEOUT_SECONDS)
    if _env(env, 'AZCG_TIMEOUT'):
        timeout = _positive_number(env['AZCG_TIMEOUT'], 'AZCG_TIMEOUT')

    rate = settings.get('usd_to_eur_rate', USD_TO_EUR_RATE)
    if _env(env, 'AZCG_USD_TO_EUR'):
        rate = positive_decimal(env['AZCG_USD_TO_EUR'], 'AZCG_USD_TO_EUR')

    return RunConfig(
        subscription_id=subscription_id,
        location=location,
        deep_scan=deep_scan,
        terraform_executable=_env(env, 'INPUT_TERRAFORM-EXECUTABLE'),
        estimator_executable=(
            _env(env, 'AZCG_ESTIMATOR') or settings.get('estimator', DEFAULT_ESTIMATOR)
        ),
        timeout_seconds=timeout,
        usd_to_eur_rate=rate,
        output_path=_env(env, 'AZCG_OUTPUT') or settings.get('output', DEFAULT_OUTPUT_PATH),
    )


def _env(env: Mapping[str, str], name: str) -> Optional[str]:
    """Return a stripped environment value, treating blanks as unset."""
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _positive_number(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be a number")
    if not math.isfinite(number) or number <= 0:
        raise ConfigError(f"'{name}' must be > 0")
    return number


def positive_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a number")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ConfigError(f"'{name}' must be a number")
    if not number.is_finite() or number <= 0:
        raise ConfigError(f"'{name}' must be > 0")
    return number
