"""Unit tests for short id generation and alias validation."""

import pytest

from shardurl.errors import ValidationError
from shardurl.identifiers import RESERVED_ALIASES, URL_SAFE_ALPHABET, IdentifierService


@pytest.fixture
def identifiers() -> IdentifierService:
    return IdentifierService()


def test_generate_default_length(identifiers: IdentifierService) -> None:
    assert len(identifiers.generate()) == 8


def test_generate_custom_length() -> None:
    assert len(IdentifierService(length=12).generate()) == 12


def test_generate_only_url_safe(identifiers: IdentifierService) -> None:
    for _ in range(200):
        assert all(c in URL_SAFE_ALPHABET for c in identifiers.generate())


def test_generate_uniqueness(identifiers: IdentifierService) -> None:
    codes = {identifiers.generate() for _ in range(1000)}
    # With 64^8 possibilities, 1000 ids should all be unique
    assert len(codes) == 1000


def test_non_positive_length_rejected() -> None:
    with pytest.raises(ValueError):
        IdentifierService(length=0)


@pytest.mark.parametrize("alias", ["blog", "my-link", "under_score", "A1", "x" * 50])
def test_valid_aliases(identifiers: IdentifierService, alias: str) -> None:
    assert identifiers.validate_alias(alias) == alias


@pytest.mark.parametrize(
    "alias, message",
    [
        ("", "must not be empty"),
        ("x" * 51, "at most 50"),
        ("has space", "may only contain"),
        ("slash/path", "may only contain"),
        ("tab\n", "may only contain"),
        ("ünï", "may only contain"),
    ],
)
def test_invalid_aliases(identifiers: IdentifierService, alias: str, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        identifiers.validate_alias(alias)


@pytest.mark.parametrize("alias", sorted(RESERVED_ALIASES) + ["API", "Health"])
def test_reserved_aliases(identifiers: IdentifierService, alias: str) -> None:
    with pytest.raises(ValidationError, match="reserved"):
        identifiers.validate_alias(alias)


def test_resolve_prefers_alias(identifiers: IdentifierService) -> None:
    assert identifiers.resolve("blog") == ("blog", True)

    short_id, is_alias = identifiers.resolve(None)
    assert is_alias is False
    assert len(short_id) == 8


def test_is_well_formed(identifiers: IdentifierService) -> None:
    assert identifiers.is_well_formed("abc123")
    assert identifiers.is_well_formed(identifiers.generate())
    assert not identifiers.is_well_formed("")
    assert not identifiers.is_well_formed("bad id")
    assert not identifiers.is_well_formed("x" * 51)
