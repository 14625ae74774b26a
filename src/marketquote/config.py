from dataclasses import dataclass, field, is_dataclass
import os
from pathlib import Path
import sys
import tomllib
from typing import Any, ClassVar, TypeVar

import httpx
import keyring
from keyring.errors import KeyringError
from loguru import logger

from marketquote import __version__

# --- Constants ---
APP_NAME = "marketquote"
# Use a platform-agnostic user config directory
if sys.platform == "win32":
    CONFIG_DIR = Path.home() / "AppData" / "Roaming" / APP_NAME
else:
    CONFIG_DIR = Path.home() / ".config" / APP_NAME

CONFIG_FILE = CONFIG_DIR / "config.toml"

# --- Keyring Service Name ---
KEYRING_SERVICE_NAME = f"{APP_NAME.lower()}-api-tokens"

# --- Dataclass Models for Settings ---
T = TypeVar("T")


@dataclass
class GeneralSettings:
    """General application settings."""

    log_level_console: str = "INFO"
    log_level_file: str = "DEBUG"
    log_directory: str = str(CONFIG_DIR / "logs")


@dataclass
class FetchSettings:
    """Settings applied to every provider request."""

    # Pause between symbols in a batch, to stay under provider rate limits.
    delay_seconds: float = 0.1
    timeout_seconds: float = 30.0
    default_period: str = "d"
    adjust_prices: bool = True
    user_agent: str = f"{APP_NAME}/{__version__}"


@dataclass
class Settings:
    """Root container for all application settings."""

    general: GeneralSettings = field(default_factory=GeneralSettings)
    fetch: FetchSettings = field(default_factory=FetchSettings)

    _instance: ClassVar["Settings | None"] = None

    @classmethod
    def get_instance(cls) -> "Settings":
        """Returns the process-wide Settings object, loading it on first use."""
        if cls._instance is None:
            cls._instance = load_config()
        return cls._instance


def _update_dataclass(dc_instance: T, data: dict[str, Any]) -> T:
    """Recursively updates a dataclass instance from a dictionary."""
    for f in field_names(dc_instance):
        if f in data:
            field_value = getattr(dc_instance, f)
            if is_dataclass(field_value):
                if isinstance(data[f], dict):
                    _update_dataclass(field_value, data[f])
                else:
                    logger.warning(f"Ignoring non-table value for section '{f}'.")
            else:
                setattr(dc_instance, f, data[f])
    return dc_instance


def field_names(dc_instance: Any) -> list[str]:
    """Helper to get field names from a dataclass instance."""
    return [f.name for f in dc_instance.__dataclass_fields__.values()]


def load_config(path: Path = CONFIG_FILE) -> Settings:
    """Loads settings from a TOML file, merging them with defaults.

    A missing file is not an error; the defaults are returned.

    Args:
        path: The path to the configuration file.

    Returns:
        A populated Settings object.
    """
    settings_obj = Settings()

    if not path.exists():
        logger.debug(f"No configuration file at '{path}', using defaults.")
        return settings_obj

    logger.info(f"Loading configuration from '{path}'...")
    try:
        with path.open("rb") as f:
            user_config = tomllib.load(f)
        _update_dataclass(settings_obj, user_config)
        logger.success("Successfully loaded user configuration.")
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Error decoding TOML from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()
    except OSError as e:
        logger.error(f"Could not read configuration file '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()

    return settings_obj


# --- Token Management ---


def _env_var_name(provider_name: str) -> str:
    return f"{provider_name.upper().replace('-', '_')}_API_TOKEN"


def get_api_token(provider_name: str) -> str | None:
    """Retrieves the API token for a provider.

    The system keyring is consulted first, then the `<PROVIDER>_API_TOKEN`
    environment variable (e.g. `TIINGO_API_TOKEN`).

    Args:
        provider_name: The lower-case source name of the provider (e.g. 'tiingo').

    Returns:
        The token, or None if none is configured.
    """
    provider_name = provider_name.lower()
    try:
        token = keyring.get_password(KEYRING_SERVICE_NAME, f"{provider_name}_token")
    except KeyringError as e:
        logger.warning(f"Could not read token from keyring: {e}")
        token = None

    if token:
        logger.debug(f"Retrieved token for '{provider_name}' from keyring.")
        return token

    token = os.environ.get(_env_var_name(provider_name))
    if token:
        logger.debug(f"Using token for '{provider_name}' from environment.")
    return token or None


def set_api_token(provider_name: str, token: str) -> None:
    """Stores the API token for a provider in the system keyring."""
    provider_name = provider_name.lower()
    try:
        keyring.set_password(KEYRING_SERVICE_NAME, f"{provider_name}_token", token)
        logger.info(f"Successfully stored token for '{provider_name}' in keyring.")
    except KeyringError as e:
        logger.error(f"Could not store token in keyring: {e}")


# --- HTTP Client ---


def create_http_client(fetch_settings: FetchSettings | None = None) -> httpx.AsyncClient:
    """Creates the shared AsyncClient used by every provider.

    The caller owns the client and is responsible for closing it, typically
    with `async with create_http_client() as client:`.
    """
    fetch_settings = fetch_settings or Settings.get_instance().fetch
    return httpx.AsyncClient(
        timeout=fetch_settings.timeout_seconds,
        headers={"User-Agent": fetch_settings.user_agent},
        follow_redirects=True,
    )
