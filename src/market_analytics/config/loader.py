"""
Configuration loader with YAML + environment variable support.

Loads and validates configuration files from the config/ directory.
Supports:
- Loading from YAML files
- ${VAR} / ${VAR:default} placeholders
- Environment variable overrides
- Pydantic validation
- Hot reload and caching
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dotenv import load_dotenv
import logging

from .settings import AnalyticsConfig


logger = logging.getLogger(__name__)

# Project root: src/market_analytics/config/loader.py -> repository root
PROJECT_ROOT = Path(__file__).resolve().parents[3]

load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_CONFIG_NAME = "analytics"

# Environment variable -> (section, key, cast)
ENV_OVERRIDES = {
    "LOG_LEVEL": ("system", "log_level", str),
    "LOG_FILE": ("system", "log_file", str),
    "VOLUME_PROFILE_BUCKETS": ("volume_profile", "bucket_count", int),
    "VALUE_AREA_PCT": ("volume_profile", "value_area_pct", float),
    "ORDER_FLOW_WINDOW": ("order_flow", "default_window", str),
    "ORDER_FLOW_BUCKET_SIZE": ("order_flow", "price_bucket_size", float),
    "PORTFOLIO_CAPITAL_BASE": ("portfolio", "capital_base", float),
}


# ============================================================================
# ConfigLoader - Main Configuration Loader
# ============================================================================

class ConfigLoader:
    """
    Configuration loader with YAML + environment variable support.

    Features:
    - Loads configuration from YAML files
    - Overrides with environment variables
    - Validates using Pydantic models
    - Supports hot reload
    - Caches loaded configurations
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration loader.

        Args:
            config_dir: Configuration directory (defaults to PROJECT_ROOT/config)
        """
        self.config_dir = Path(config_dir) if config_dir else (PROJECT_ROOT / "config")
        self._cache: Dict[str, Any] = {}
        logger.debug(f"ConfigLoader initialized with config_dir: {self.config_dir}")

    def load_yaml(self, config_name: str) -> Dict[str, Any]:
        """
        Load a YAML configuration file.

        Args:
            config_name: Name of the config file (without .yaml extension)

        Returns:
            Dictionary containing configuration data

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        config_path = self.config_dir / f"{config_name}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        logger.debug(f"Loading YAML config from: {config_path}")

        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        return self._replace_env_vars(config)

    def _replace_env_vars(self, config: Any) -> Any:
        """
        Recursively replace environment variable placeholders in config.

        Placeholders format: ${ENV_VAR_NAME} or ${ENV_VAR_NAME:default_value}
        An unset variable without a default becomes None.
        """
        if isinstance(config, dict):
            return {k: self._replace_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._replace_env_vars(item) for item in config]
        elif isinstance(config, str):
            if config.startswith("${") and config.endswith("}"):
                env_expr = config[2:-1]

                if ":" in env_expr:
                    var_name, default_value = env_expr.split(":", 1)
                    return os.getenv(var_name.strip(), default_value.strip())
                else:
                    var_name = env_expr.strip()
                    value = os.getenv(var_name)
                    if value is None:
                        logger.warning(f"Environment variable {var_name} not set, using null")
                    return value

        return config

    def load_config(self, use_cache: bool = True, config_name: str = DEFAULT_CONFIG_NAME) -> AnalyticsConfig:
        """
        Load complete analytics configuration.

        Args:
            use_cache: Use cached config if available
            config_name: YAML file name inside config_dir

        Returns:
            Validated AnalyticsConfig instance

        Raises:
            pydantic.ValidationError: If the merged configuration is invalid
        """
        if use_cache and config_name in self._cache:
            logger.debug("Returning cached analytics config")
            return self._cache[config_name]

        config_data: Dict[str, Any] = {}

        try:
            config_data.update(self.load_yaml(config_name))
        except FileNotFoundError:
            logger.warning(f"{config_name}.yaml not found, using defaults")

        config_data = self._apply_env_overrides(config_data)

        try:
            config = AnalyticsConfig(**config_data)
            logger.info("Analytics configuration loaded and validated successfully")
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        if use_cache:
            self._cache[config_name] = config

        return config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides to configuration.

        Example: VOLUME_PROFILE_BUCKETS=100

        Args:
            config: Configuration dictionary

        Returns:
            Configuration with environment overrides applied
        """
        for env_name, (section, key, cast) in ENV_OVERRIDES.items():
            if env_val := os.getenv(env_name):
                try:
                    value = cast(env_val)
                except ValueError:
                    logger.warning(f"Ignoring {env_name}={env_val!r}: expected {cast.__name__}")
                    continue
                section_data = config.get(section) or {}
                section_data[key] = value
                config[section] = section_data

        return config

    def reload(self) -> AnalyticsConfig:
        """
        Reload configuration from disk (hot reload).

        Returns:
            Fresh AnalyticsConfig instance
        """
        logger.info("Reloading configuration from disk")
        self._cache.clear()
        return self.load_config()

    def clear_cache(self):
        """Clear the configuration cache."""
        self._cache.clear()


# ============================================================================
# Global ConfigLoader Instance
# ============================================================================

_global_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """
    Get or create global ConfigLoader instance.

    Returns:
        Global ConfigLoader instance
    """
    global _global_loader
    if _global_loader is None:
        _global_loader = ConfigLoader()
    return _global_loader


def get_config(use_cache: bool = True) -> AnalyticsConfig:
    """
    Get complete analytics configuration.

    Args:
        use_cache: Use cached config if available

    Returns:
        Validated AnalyticsConfig instance
    """
    return get_config_loader().load_config(use_cache=use_cache)


def reload_config() -> AnalyticsConfig:
    """
    Reload configuration from disk (hot reload).

    Returns:
        Fresh AnalyticsConfig instance
    """
    return get_config_loader().reload()
