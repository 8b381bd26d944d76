"""Settings parsing tests."""

import pytest
from pydantic import ValidationError

from shardurl.config import Settings


def test_shard_addresses_preserve_order() -> None:
    settings = Settings(_env_file=None, REDIS_SHARDS="redis-a:6379, redis-b:6380 ,redis-c:6381")
    assert settings.shard_addresses == [("redis-a", 6379), ("redis-b", 6380), ("redis-c", 6381)]


def test_default_shards_match_three_local_instances() -> None:
    settings = Settings(_env_file=None)
    assert len(settings.shard_addresses) == 3
    assert settings.DEFAULT_TTL_SECONDS == 3600
    assert settings.SHORT_ID_LENGTH == 8


@pytest.mark.parametrize("value", ["", " , ", "redis-a", "redis-a:port", ":6379"])
def test_invalid_shard_list_is_rejected(value: str) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, REDIS_SHARDS=value)


def test_non_positive_ttl_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DEFAULT_TTL_SECONDS=0)


def test_unknown_settings_are_ignored() -> None:
    # Older deployments still export APP_ENV; it is no longer a setting.
    settings = Settings(_env_file=None, APP_ENV="production")
    assert not hasattr(settings, "APP_ENV")
