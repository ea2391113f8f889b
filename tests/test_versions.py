"""Tests for version normalization and latest-version selection."""

from __future__ import annotations

import pytest

from nuspect_core.source.versions import is_prerelease, latest_version, normalize_version, version_key


@pytest.mark.parametrize("value", [None, "", "   ", "latest", "LATEST"])
def test_normalize_version_treats_blank_and_latest_as_unspecified(value) -> None:
    assert normalize_version(value) is None


def test_normalize_version_strips() -> None:
    assert normalize_version(" 1.2.3 ") == "1.2.3"


def test_is_prerelease_ignores_build_metadata() -> None:
    assert is_prerelease("1.0.0-beta.2")
    assert not is_prerelease("1.0.0")
    assert not is_prerelease("1.0.0+sha-abc")


def test_version_key_orders_numerically_and_stable_last() -> None:
    versions = ["1.10.0", "1.2.0", "1.2.0-rc.1", "1.2.0-alpha", "1.9.0", "0.9"]
    assert sorted(versions, key=version_key) == ["0.9", "1.2.0-alpha", "1.2.0-rc.1", "1.2.0", "1.9.0", "1.10.0"]


def test_latest_version_prefers_stable_releases() -> None:
    assert latest_version(["1.0.0", "1.1.0", "2.0.0-preview.1"]) == "1.1.0"
    assert latest_version(["1.0.0", "2.0.0-preview.1"], include_prerelease=True) == "2.0.0-preview.1"


def test_latest_version_falls_back_to_prereleases_and_handles_empty() -> None:
    assert latest_version(["0.1.0-alpha", "0.1.0-beta"]) == "0.1.0-beta"
    assert latest_version([]) is None
    assert latest_version(["", "  "]) is None
