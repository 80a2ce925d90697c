"""Configuration: YAML file, .env and environment overrides, validation."""

from mint_service.config.settings import get_service_config, read_config, validate_service_config

__all__ = ["read_config", "get_service_config", "validate_service_config"]
