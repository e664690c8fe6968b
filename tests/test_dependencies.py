"""
Unit Tests: Request Parsing, Configuration and Health
"""

import pytest
from httpx import AsyncClient

from takeaway.core.config import DEFAULT_DATABASE_URL, EnvironmentMode, Settings
from takeaway.dependencies import parse_ids


class TestParseIds:

    def test_single_id(self):
        assert parse_ids("7") == [7]

    def test_several_ids_with_spaces(self):
        assert parse_ids("3, 5,8") == [3, 5, 8]

    def test_duplicates_are_dropped_in_order(self):
        assert parse_ids("5,3,5") == [5, 3]

    @pytest.mark.parametrize("raw", ["", "1,,2", "a", "0", "-1", "1.5"])
    def test_rejects_malformed_input(self, raw):
        with pytest.raises(ValueError):
            parse_ids(raw)


class TestSettings:

    def test_env_mode_is_case_insensitive(self):
        settings = Settings(env_mode="PRODUCTION")

        assert settings.env_mode is EnvironmentMode.PRODUCTION
        assert settings.uses_redis is True

    def test_invalid_env_mode(self):
        with pytest.raises(ValueError):
            Settings(env_mode="qa")

    def test_production_config_reports_defaults(self):
        settings = Settings(
            env_mode="production",
            database_url=DEFAULT_DATABASE_URL,
            redis_url="redis://localhost:6379/0",
        )

        assert settings.validate_production_config() == ["DATABASE_URL", "REDIS_URL"]

    def test_development_needs_nothing(self):
        settings = Settings(env_mode="development")

        assert settings.validate_production_config() == []
        assert settings.cache_ttl_seconds == 86400


async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "operational"
    assert data["cache_provider"] == "memory"
