"""Tests for domain id normalization and DNS name validation."""

from __future__ import annotations

import pytest

from domainpool.domain.ids import (
    is_valid_domain_id,
    is_valid_name,
    normalize_domain_id,
    normalize_name,
)


class TestNormalizeDomainId:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("haze.bio", "haze-bio"),
            ("Haze.Bio", "haze-bio"),
            ("  cute-domain ", "cute-domain"),
            ("a.b.c", "a-b-c"),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_domain_id(raw) == expected

    def test_normalized_id_is_valid(self) -> None:
        assert is_valid_domain_id(normalize_domain_id("Profiles.Example.COM"))

    @pytest.mark.parametrize("bad", ["", "-lead", "has space", "slash/y", "dot.ted"])
    def test_invalid_ids(self, bad: str) -> None:
        assert not is_valid_domain_id(bad)


class TestNames:
    def test_normalize_name_strips_trailing_dot(self) -> None:
        assert normalize_name(" Haze.BIO. ") == "haze.bio"

    @pytest.mark.parametrize("good", ["haze.bio", "a.b", "x-1.example.com", "localhost"])
    def test_valid(self, good: str) -> None:
        assert is_valid_name(good)

    @pytest.mark.parametrize("bad", ["", "-a.com", "a-.com", "a..b", "under_score.com", "a b.com"])
    def test_invalid(self, bad: str) -> None:
        assert not is_valid_name(bad)

    def test_label_too_long(self) -> None:
        assert not is_valid_name("a" * 64 + ".com")
        assert is_valid_name("a" * 63 + ".com")
