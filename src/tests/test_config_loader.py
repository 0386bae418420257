"""
Test suite for ConfigLoader component
Following TDD approach with AAA pattern and descriptive naming
"""

import dataclasses
import os
import tempfile
import pytest
from pathlib import Path
from unittest.mock import patch
from catalog_harvester.config_loader import (
    ConfigLoader, ConfigurationError, MissingEnvironmentError, HarvesterConfig, RateLimitConfig
)


VALID_TOML = """
[api]
name = "shopify"
base_url = "https://example-store.myshopify.com/admin/api/2024-01/graphql.json"
access_token_env = "TEST_SHOPIFY_TOKEN"
timeout_seconds = 15

[page_sizes]
products = 40

[rate_limits]
threshold_percent = 60
min_delay_ms = 500
max_delay_ms = 2500

[retries]
max_attempts = 4
backoff_factor = 1.5

[harvest]
target_publication_id = "77"
strict_shape_validation = false
max_pages = 100

[logging]
debug = true
log_file_name = "harvest.log"
"""


def _write_toml(directory: str, content: str) -> Path:
    config_path = Path(directory) / "harvest.toml"
    config_path.write_text(content)
    return config_path


class TestConfigLoader:
    """Test suite for ConfigLoader TOML configuration loading functionality"""

    @patch.dict(os.environ, {'TEST_SHOPIFY_TOKEN': 'shpat_from_env'})
    def test_load_toml_config_with_valid_file_returns_harvester_config(self):
        """
        Test that a valid TOML file produces a fully populated HarvesterConfig
        """
        # Arrange
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write_toml(temp_dir, VALID_TOML)

            # Act
            config = ConfigLoader.load_toml_config(config_path)

        # Assert
        assert isinstance(config, HarvesterConfig)
        assert config.access_token == 'shpat_from_env'
        assert config.timeout_seconds == 15.0
        assert config.page_size('products') == 40
        assert config.page_size('collections') == 50
        assert config.rate_limits == RateLimitConfig(threshold_percent=60, min_delay_ms=500, max_delay_ms=2500)
        assert config.retries.max_attempts == 4
        assert config.retries.backoff_factor == 1.5
        assert config.target_publication_id == '77'
        assert config.strict_shape_validation is False
        assert config.max_pages == 100
        assert config.debug is True
        assert config.log_file_name == 'harvest.log'

    @patch.dict(os.environ, {'TEST_SHOPIFY_TOKEN': 'shpat_from_env'})
    def test_load_toml_config_returns_immutable_config(self):
        """
        Test that configuration cannot be changed after loading
        """
        # Arrange
        with tempfile.TemporaryDirectory() as temp_dir:
            config = ConfigLoader.load_toml_config(_write_toml(temp_dir, VALID_TOML))

        # Act & Assert
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.base_url = 'https://elsewhere.test'

    @patch.dict(os.environ, {'TEST_SHOPIFY_TOKEN': 'shpat_from_env'})
    def test_load_toml_config_page_sizes_are_read_only(self):
        """
        Test that page sizes cannot be changed through the frozen config
        """
        # Arrange
        with tempfile.TemporaryDirectory() as temp_dir:
            config = ConfigLoader.load_toml_config(_write_toml(temp_dir, VALID_TOML))

        # Act & Assert
        with pytest.raises(TypeError):
            config.page_sizes['products'] = 500

        assert config.page_size('products') == 40

    @patch.dict(os.environ, {'TEST_SHOPIFY_TOKEN': 'shpat_from_env'})
    def test_load_toml_config_with_quoted_retry_numbers_casts_them(self):
        """
        Test that quoted retry values are converted like the other numeric keys
        """
        # Arrange
        quoted = VALID_TOML.replace("max_attempts = 4", "max_attempts = \"4\"\nmax_backoff_ms = \"30000\"")

        with tempfile.TemporaryDirectory() as temp_dir:
            # Act
            config = ConfigLoader.load_toml_config(_write_toml(temp_dir, quoted))

        # Assert
        assert config.retries.max_attempts == 4
        assert config.retries.max_backoff_ms == 30000

    @patch.dict(os.environ, {'TEST_SHOPIFY_TOKEN': 'shpat_from_env'})
    def test_load_toml_config_with_non_numeric_retry_value_raises_configuration_error(self):
        """
        Test that an unparseable retry count is a configuration problem
        """
        # Arrange
        malformed = VALID_TOML.replace("max_attempts = 4", "max_attempts = \"four\"")

        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write_toml(temp_dir, malformed)

            # Act & Assert
            with pytest.raises(ConfigurationError) as exc_info:
                ConfigLoader.load_toml_config(config_path)

        assert "Invalid numeric value" in str(exc_info.value)

    def test_load_toml_config_with_missing_file_raises_file_not_found(self):
        """
        Test that a nonexistent path raises FileNotFoundError
        """
        # Act & Assert
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_toml_config(Path("/nonexistent/harvest.toml"))

    def test_load_toml_config_with_missing_sections_lists_them(self):
        """
        Test that every missing required item is reported together
        """
        # Arrange
        incomplete_toml = """
        [api]
        name = "shopify"
        base_url = "https://example-store.myshopify.com/admin/api/2024-01/graphql.json"
        """

        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write_toml(temp_dir, incomplete_toml)

            # Act & Assert
            with pytest.raises(ConfigurationError) as exc_info:
                ConfigLoader.load_toml_config(config_path)

        message = str(exc_info.value)
        assert "Key 'access_token_env' in section [api]" in message
        assert "Section [rate_limits]" in message
        assert "Section [retries]" in message

    def test_load_toml_config_with_invalid_syntax_raises_configuration_error(self):
        """
        Test that malformed TOML is reported as a configuration problem
        """
        # Arrange
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write_toml(temp_dir, "[api\nname = ")

            # Act & Assert
            with pytest.raises(ConfigurationError) as exc_info:
                ConfigLoader.load_toml_config(config_path)

        assert "Invalid TOML syntax" in str(exc_info.value)

    @patch.dict(os.environ, {}, clear=True)
    def test_load_toml_config_without_token_variable_raises_environment_error(self):
        """
        Test that an unset access token variable is reported by name
        """
        # Arrange
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write_toml(temp_dir, VALID_TOML)

            # Act & Assert
            with pytest.raises(MissingEnvironmentError) as exc_info:
                ConfigLoader.load_toml_config(config_path)

        assert "TEST_SHOPIFY_TOKEN" in str(exc_info.value)

    @patch.dict(os.environ, {'TEST_SHOPIFY_TOKEN': 'shpat_from_env'})
    def test_load_toml_config_with_inverted_delay_bounds_raises(self):
        """
        Test that min_delay_ms greater than max_delay_ms is rejected
        """
        # Arrange
        inverted = VALID_TOML.replace("min_delay_ms = 500", "min_delay_ms = 9000")

        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write_toml(temp_dir, inverted)

            # Act & Assert
            with pytest.raises(ConfigurationError) as exc_info:
                ConfigLoader.load_toml_config(config_path)

        assert "min_delay_ms" in str(exc_info.value)

    def test_from_environment_applies_defaults(self):
        """
        Test that only the endpoint and token are required in the environment
        """
        # Arrange
        environ = {
            'SHOPIFY_API_URI': 'https://example-store.myshopify.com/admin/api/2024-01/graphql.json',
            'SHOPIFY_API_TOKEN': 'shpat_env'
        }

        # Act
        config = ConfigLoader.from_environment(environ)

        # Assert
        assert config.access_token == 'shpat_env'
        assert config.rate_limits.threshold_percent == 50
        assert config.page_size('products') == 20
        assert config.target_publication_id is None

    def test_from_environment_reads_overrides(self):
        """
        Test that rate limit, page size and publication overrides are honoured
        """
        # Arrange
        environ = {
            'SHOPIFY_API_URI': 'https://example-store.myshopify.com/admin/api/2024-01/graphql.json',
            'SHOPIFY_API_TOKEN': 'shpat_env',
            'SHOPIFY_API_RATE_LIMIT': '80',
            'SHOPIFY_API_GRAPHQL_PRODUCTS': '100',
            'SHOPIFY_TARGET_PUBLICATION_ID': '77',
            'SHOPIFY_API_DEBUG': 'true'
        }

        # Act
        config = ConfigLoader.from_environment(environ)

        # Assert
        assert config.rate_limits.threshold_percent == 80
        assert config.page_size('products') == 100
        assert config.target_publication_id == '77'
        assert config.debug is True

    def test_from_environment_without_token_raises_environment_error(self):
        """
        Test that missing required variables are listed
        """
        # Act & Assert
        with pytest.raises(MissingEnvironmentError) as exc_info:
            ConfigLoader.from_environment({'SHOPIFY_API_URI': 'https://example.test'})

        assert "SHOPIFY_API_TOKEN" in str(exc_info.value)

    def test_from_environment_with_non_numeric_page_size_raises(self):
        """
        Test that malformed numeric variables raise ConfigurationError
        """
        # Arrange
        environ = {
            'SHOPIFY_API_URI': 'https://example.test',
            'SHOPIFY_API_TOKEN': 'shpat_env',
            'SHOPIFY_API_GRAPHQL_PRODUCTS': 'twenty'
        }

        # Act & Assert
        with pytest.raises(ConfigurationError):
            ConfigLoader.from_environment(environ)
