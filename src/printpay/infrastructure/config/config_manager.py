"""Configuration manager for loading and validating .printpay.yml"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from printpay.domain.config import (
    AppConfig,
    FulfillmentConfig,
    ImageConfig,
    PaymentConfig,
    PayoutConfig,
    PricingConfig,
    RetryPresetsConfig,
    ServerConfig,
)
from printpay.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".printpay.yml"

# env var -> (section, key)
ENV_OVERRIDES = {
    "PRINTPAY_PAY_TO": ("payment", "pay_to"),
    "PRINTPAY_NETWORK": ("payment", "network"),
    "PRINTPAY_FACILITATOR": ("payment", "facilitator"),
    "X402_FACILITATOR_URL": ("payment", "facilitator_url"),
    "X402_FACILITATOR_API_KEY": ("payment", "facilitator_api_key"),
    "PRINTIFY_API_KEY": ("fulfillment", "api_token"),
    "PRINTIFY_SHOP_ID": ("fulfillment", "shop_id"),
    "PRINTIFY_ORDER_API_KEY": ("fulfillment", "order_api_token"),
    "PRINTIFY_ORDER_SHOP_ID": ("fulfillment", "order_shop_id"),
    "PRINTPAY_IMAGE_PROVIDER": ("image", "provider"),
    "OPENAI_API_KEY": ("image", "api_key"),
    "PAYMENT_SPLITTER_PRIVATE_KEY": ("payout", "private_key"),
    "PAYOUT_RPC_URL": ("payout", "rpc_url"),
}

SECRET_KEYS = {"api_token", "order_api_token", "api_key", "private_key", "facilitator_api_key"}


class ConfigManager:
    """Manages configuration from .printpay.yml and environment variables

    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values (defined in Pydantic models)
    2. .printpay.yml file (searched from current directory)
    3. Environment variables (PRINTPAY_*, PRINTIFY_*, X402_*, OPENAI_API_KEY, ...)
    4. CLI arguments (handled by CLI layer)
    """

    def __init__(self, config_path: Optional[Union[Path, str]] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize config manager

        Args:
            config_path: Path to .printpay.yml (searches from current dir if None)
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            # Format validation errors for user
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                errors.append(f"  - {field}: {error['msg']}")
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(errors)) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .printpay.yml starting from current directory"""
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and environment, then validate

        Raises:
            ValidationError: If configuration is invalid
            ConfigurationError: If the file exists but cannot be parsed
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config from {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"{self.config_path} must contain a mapping")
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)
        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides"""
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                section_dict = config.get(section)
                if not isinstance(section_dict, dict):
                    section_dict = {}
                    config[section] = section_dict
                section_dict[key] = value
        return config

    def get_payment_config(self) -> PaymentConfig:
        return self.config.payment

    def get_pricing_config(self) -> PricingConfig:
        return self.config.pricing

    def get_fulfillment_config(self) -> FulfillmentConfig:
        return self.config.fulfillment

    def get_image_config(self) -> ImageConfig:
        return self.config.image

    def get_payout_config(self) -> PayoutConfig:
        return self.config.payout

    def get_retry_config(self) -> RetryPresetsConfig:
        return self.config.retry

    def get_server_config(self) -> ServerConfig:
        return self.config.server

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)

        Args:
            key: Configuration key (e.g., "payment.network" or "payment")
            default: Default value if key not found
        """
        value: Any = self.config.model_dump()
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def masked_dump(self) -> Dict[str, Any]:
        """Effective configuration with secrets replaced by ``***``"""

        def _mask(node: Any) -> Any:
            if isinstance(node, dict):
                return {
                    k: ("***" if k in SECRET_KEYS and v else _mask(v)) for k, v in node.items()
                }
            return node

        return _mask(self.config.model_dump())
