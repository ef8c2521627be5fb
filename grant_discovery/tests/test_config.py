"""Tests for configuration validation."""

import os
import pytest
from unittest.mock import patch

from grant_discovery.config import Config, load_config, validate_config
from grant_discovery.enrichment import GeminiEnrichmentService
from grant_discovery.pipeline import DiscoveryPipeline


class TestConfigValidation:
    """Test startup config validation."""

    VALID_ENV = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-key-123",
        "GEMINI_API_KEY": "test-gemini-key",
        "DEFAULT_MIN_SCORE": "40",
        "AI_SCORE_WEIGHT": "0.25",
        "LOG_LEVEL": "DEBUG",
    }

    def test_valid_config_loads_successfully(self):
        """All vars present → Config loads without error."""
        with patch.dict(os.environ, self.VALID_ENV, clear=True):
            config = validate_config(require_pool=True)

        assert config.supabase_url == "https://test.supabase.co"
        assert config.supabase_key == "test-key-123"
        assert config.gemini_api_key == "test-gemini-key"
        assert config.default_min_score == 40
        assert config.ai_score_weight == 0.25
        assert config.log_level == "DEBUG"

    def test_defaults_without_environment(self):
        """Nothing is required when the pool comes from elsewhere."""
        with patch.dict(os.environ, {}, clear=True):
            config = load_config()

        assert config.supabase_url is None
        assert config.default_limit == 20
        assert config.default_min_score == 30
        assert config.enrichment_timeout_seconds == 20.0
        assert not config.enrichment_configured

    def test_missing_pool_vars_all_listed(self):
        """Missing Supabase vars → one ValueError naming every one of them."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError) as exc_info:
                validate_config(require_pool=True)

        message = str(exc_info.value)
        assert "SUPABASE_URL" in message
        assert "SUPABASE_KEY" in message

    def test_invalid_type_raises_value_error(self):
        with patch.dict(os.environ, {"POOL_LIMIT": "lots"}, clear=True):
            with pytest.raises(ValueError) as exc_info:
                validate_config()

        assert "pool_limit" in str(exc_info.value)

    def test_ai_weight_out_of_range(self):
        with patch.dict(os.environ, {"AI_SCORE_WEIGHT": "1.5"}, clear=True):
            with pytest.raises(ValueError, match="AI_SCORE_WEIGHT"):
                validate_config()

    def test_enrichment_can_be_switched_off(self):
        env = {"GEMINI_API_KEY": "k", "ENRICHMENT_ENABLED": "false"}
        with patch.dict(os.environ, env, clear=True):
            config = validate_config()

        assert not config.enrichment_configured


class TestPipelineFromConfig:

    def test_builds_gemini_enrichment_when_configured(self):
        config = Config(gemini_api_key="k", enrichment_timeout_seconds=5, ai_candidate_limit=10)

        pipeline = DiscoveryPipeline.from_config(config)

        assert isinstance(pipeline.enrichment, GeminiEnrichmentService)
        assert pipeline.enrichment_timeout == 5
        assert pipeline.ai_candidate_limit == 10
        assert pipeline.cache is not None

    def test_no_enrichment_without_key(self):
        with patch.dict(os.environ, {}, clear=True):
            pipeline = DiscoveryPipeline.from_config(Config())

        assert pipeline.enrichment is None

    def test_loads_weights_file(self, tmp_path):
        path = tmp_path / "weights.yaml"
        path.write_text(
            "entity_type: 15\ngeography: 15\nindustry: 40\nfunding: 15\n"
            "deadline: 5\nquality: 10\nversion: custom\n"
        )

        pipeline = DiscoveryPipeline.from_config(Config(weights_file=str(path)))

        assert pipeline.weights.industry == 40
        assert pipeline.weights.version == "custom"
