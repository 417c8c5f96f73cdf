"""Configuration for genpool: pool thresholds, retry budget, providers.

Values come from a YAML file (~/.genpool/config.yaml), a .env file and the
process environment. Keys are dotted (`retry.max_attempts`); the environment
spelling is GENPOOL_RETRY_MAX_ATTEMPTS or RETRY_MAX_ATTEMPTS.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Dict

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Locations and naming ---
DEFAULT_CONFIG_DIR = Path.home() / ".genpool"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "GENPOOL_"

# Provider -> environment variable holding that provider's own API key
PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
}

# --- Process-wide store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False

def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('retry.max_attempts')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat

def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None,
                       force: bool = False) -> None:
    """Reads the YAML file and the .env file once per process.

    Real environment variables beat .env entries, which beat YAML values;
    callers supply the final default.

    Args:
        config_file: Path to the YAML configuration file (~/.genpool/config.yaml if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    config_file = config_file or DEFAULT_CONFIG_FILE

    _config = {}

    # YAML first; everything else overrides it
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # .env entries land in os.environ without clobbering real variables
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")

def _coerce(value: str) -> Any:
    """Converts common string forms from the environment to Python values."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value

def get_config(key: str, default: Any = None) -> Any:
    """Looks up a dotted key: test overrides, then environment, then YAML.

    Args:
        key: Dotted configuration key, e.g. `pool.error_threshold`.
        default: Returned when no source defines the key.
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    for candidate in (ENV_PREFIX + env_key, env_key):
        if candidate in os.environ:
            return _coerce(os.environ[candidate])

    if key in _config:
        return _config[key]

    return default

def find_dotenv_path() -> Optional[Path]:
    """Nearest .env in the working directory or one of its parents."""
    try:
        cwd = Path.cwd()
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
        return None
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the lifetime of the process."""
    logger.debug(f"Setting config: {key}")
    _config[key] = value

# --- Convenience Functions ---

def get_default_provider() -> str:
    """Provider used when the CLI gets no --provider."""
    provider = get_config('ai.default_provider', 'groq')
    return str(provider).lower() if provider is not None else 'groq'

def get_default_model(provider: Optional[str] = None) -> Optional[str]:
    """Configured model for `provider`, or None to use the adapter default."""
    selected_provider = provider or get_default_provider()
    model = get_config(f'ai.{selected_provider}.default_model')
    return str(model) if model is not None else None

def get_timeout_seconds() -> float:
    return float(get_config('ai.timeout_seconds', 60))

def get_error_threshold() -> int:
    return int(get_config('pool.error_threshold', 3))

def get_max_attempts() -> int:
    return int(get_config('retry.max_attempts', 3))

def get_backoff_unit_seconds() -> float:
    return float(get_config('retry.backoff_unit_seconds', 1.0))

def get_preview_chars() -> int:
    return int(get_config('recovery.preview_chars', 200))

def get_seed_api_key(provider: Optional[str] = None) -> Optional[str]:
    """Optional credential registered at start-up.

    Checks GENPOOL_API_KEY (or yaml `api_key`) first, then the provider's
    own variable, e.g. GROQ_API_KEY.
    """
    # Bare API_KEY is too generic to honour, so only the prefixed form is read.
    key = _test_config.get('api_key') or os.environ.get(f"{ENV_PREFIX}API_KEY") or _config.get('api_key')
    if not key:
        env_name = PROVIDER_KEY_ENV.get(provider or get_default_provider())
        key = os.environ.get(env_name) if env_name else None
    return str(key) if key else None

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Overrides keys for the current test; wins over every other source."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {sorted(config_dict)}")

def clear_test_config() -> None:
    """Drops every test override."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
