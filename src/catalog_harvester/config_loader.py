"""
ConfigLoader module for loading and validating harvester TOML configuration
"""

import os
import tomllib
from pathlib import Path
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Any, Mapping, Optional


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete"""
    pass


class MissingEnvironmentError(Exception):
    """Raised when required environment variables are missing"""
    pass


@dataclass(frozen=True)
class RateLimitConfig:
    """Proactive throttle settings shared by the cost governor and backoff"""
    threshold_percent: float = 50.0
    min_delay_ms: int = 1000
    max_delay_ms: int = 5000


@dataclass(frozen=True)
class RetryConfig:
    """Bounded retry policy for retryable responses"""
    max_attempts: int = 5
    backoff_factor: float = 2.0
    max_backoff_ms: int = 60000


@dataclass(frozen=True)
class HarvesterConfig:
    """Immutable configuration for one fetch session"""
    name: str
    base_url: str
    access_token: str
    access_token_header: str = "X-Shopify-Access-Token"
    timeout_seconds: float = 30.0
    page_sizes: Mapping[str, int] = field(default_factory=dict)
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)
    retries: RetryConfig = field(default_factory=RetryConfig)
    target_publication_id: Optional[str] = None
    strict_shape_validation: bool = True
    max_pages: Optional[int] = None
    debug: bool = False
    log_file_name: Optional[str] = None

    def __post_init__(self):
        # Page sizes stay read-only like the rest of the config
        object.__setattr__(self, 'page_sizes', MappingProxyType(dict(self.page_sizes)))

    def page_size(self, resource: str) -> int:
        return self.page_sizes.get(resource, ConfigLoader.DEFAULT_PAGE_SIZES[resource])


class ConfigLoader:
    """Loads and validates TOML configuration files"""

    # Required configuration sections and their mandatory keys
    REQUIRED_SECTIONS = {
        'api': ['name', 'base_url', 'access_token_env'],
        'rate_limits': ['threshold_percent', 'min_delay_ms', 'max_delay_ms'],
        'retries': ['max_attempts']
    }

    DEFAULT_PAGE_SIZES = {
        'collections': 50,
        'products': 20,
        'publication_products': 50
    }

    @staticmethod
    def load_toml_config(config_path: Path) -> HarvesterConfig:
        """
        Load harvester configuration from TOML file

        Args:
            config_path: Path to the TOML configuration file

        Returns:
            HarvesterConfig with the access token resolved from the environment

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If required configuration is missing or invalid
            MissingEnvironmentError: If the access token variable is not set
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'rb') as f:
                config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {config_path}: {e}")

        ConfigLoader._validate_required_sections(config_data)

        api = config_data['api']
        harvest = config_data.get('harvest', {})
        logging_section = config_data.get('logging', {})
        retries = config_data['retries']
        rate_limits = config_data['rate_limits']

        max_pages = harvest.get('max_pages', 0)

        try:
            config = HarvesterConfig(
                name=api['name'],
                base_url=api['base_url'],
                access_token=ConfigLoader.get_environment_value(api['access_token_env']),
                access_token_header=api.get('access_token_header', 'X-Shopify-Access-Token'),
                timeout_seconds=float(api.get('timeout_seconds', 30)),
                page_sizes={**ConfigLoader.DEFAULT_PAGE_SIZES, **config_data.get('page_sizes', {})},
                rate_limits=RateLimitConfig(
                    threshold_percent=float(rate_limits['threshold_percent']),
                    min_delay_ms=int(rate_limits['min_delay_ms']),
                    max_delay_ms=int(rate_limits['max_delay_ms'])
                ),
                retries=RetryConfig(
                    max_attempts=int(retries['max_attempts']),
                    backoff_factor=float(retries.get('backoff_factor', 2.0)),
                    max_backoff_ms=int(retries.get('max_backoff_ms', 60000))
                ),
                target_publication_id=harvest.get('target_publication_id') or None,
                strict_shape_validation=harvest.get('strict_shape_validation', True),
                max_pages=max_pages or None,
                debug=logging_section.get('debug', False),
                log_file_name=logging_section.get('log_file_name') or None
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric value in {config_path}: {e}")

        ConfigLoader.validate_config(config)
        return config

    @staticmethod
    def from_environment(environ: Optional[Dict[str, str]] = None) -> HarvesterConfig:
        """
        Build configuration from SHOPIFY_API_* environment variables

        Raises:
            MissingEnvironmentError: If the endpoint or token is not set
            ConfigurationError: If a numeric variable is malformed
        """
        environ = os.environ if environ is None else environ

        missing_vars = [name for name in ('SHOPIFY_API_URI', 'SHOPIFY_API_TOKEN')
                        if not environ.get(name)]
        if missing_vars:
            raise MissingEnvironmentError(
                f"Missing required environment variables: {', '.join(missing_vars)}"
            )

        try:
            threshold = float(environ.get('SHOPIFY_API_RATE_LIMIT', 50))
            products_page_size = int(environ.get('SHOPIFY_API_GRAPHQL_PRODUCTS', 20))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment value: {e}")

        config = HarvesterConfig(
            name='shopify',
            base_url=environ['SHOPIFY_API_URI'],
            access_token=environ['SHOPIFY_API_TOKEN'],
            page_sizes={**ConfigLoader.DEFAULT_PAGE_SIZES, 'products': products_page_size},
            rate_limits=RateLimitConfig(threshold_percent=threshold),
            target_publication_id=environ.get('SHOPIFY_TARGET_PUBLICATION_ID') or None,
            debug=environ.get('SHOPIFY_API_DEBUG', '').lower() in ('1', 'true', 'yes')
        )

        ConfigLoader.validate_config(config)
        return config

    @staticmethod
    def _validate_required_sections(config_data: Dict[str, Any]) -> None:
        """
        Validate that all required configuration sections and keys are present

        Raises:
            ConfigurationError: If any required section or key is missing
        """
        missing_items = []

        for section_name, required_keys in ConfigLoader.REQUIRED_SECTIONS.items():
            if section_name not in config_data:
                missing_items.append(f"Section [{section_name}]")
            else:
                section_data = config_data[section_name]
                for key in required_keys:
                    if key not in section_data:
                        missing_items.append(f"Key '{key}' in section [{section_name}]")

        if missing_items:
            raise ConfigurationError(
                f"Missing required configuration items: {', '.join(missing_items)}"
            )

    @staticmethod
    def validate_config(config: HarvesterConfig) -> None:
        """
        Check numeric bounds that TOML parsing alone cannot enforce

        Raises:
            ConfigurationError: If any value is out of range
        """
        problems = []
        limits = config.rate_limits

        if not 0 <= limits.threshold_percent <= 100:
            problems.append("threshold_percent must be between 0 and 100")
        if limits.min_delay_ms < 0 or limits.min_delay_ms > limits.max_delay_ms:
            problems.append("min_delay_ms must be >= 0 and <= max_delay_ms")
        if config.retries.max_attempts < 0:
            problems.append("max_attempts must be >= 0")
        if config.retries.backoff_factor < 1:
            problems.append("backoff_factor must be >= 1")
        for resource, size in config.page_sizes.items():
            if size < 1:
                problems.append(f"page size for '{resource}' must be >= 1")

        if problems:
            raise ConfigurationError(f"Invalid configuration: {'; '.join(problems)}")

    @staticmethod
    def get_environment_value(env_var_name: str) -> str:
        """
        Get environment variable value with proper error handling

        Raises:
            MissingEnvironmentError: If environment variable is not set
        """
        value = os.getenv(env_var_name)
        if value is None:
            raise MissingEnvironmentError(f"Environment variable '{env_var_name}' is not set")
        return value
