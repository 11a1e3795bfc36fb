"""Tests for signature and tag policies."""

import pytest

from agent_sig.config import (
    BROWSER_TAG,
    PAYER_TAG,
    SignaturePolicy,
    TagPolicy,
)
from agent_sig.errors import ConfigError


class TestSignaturePolicy:
    def test_defaults(self) -> None:
        policy = SignaturePolicy()
        assert policy.freshness_window == 60
        assert policy.clock_skew == 60
        assert policy.max_validity == 300

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENT_SIG_FRESHNESS_WINDOW", "30")
        monkeypatch.setenv("AGENT_SIG_CLOCK_SKEW", "10")
        monkeypatch.setenv("AGENT_SIG_MAX_VALIDITY", "120")
        assert SignaturePolicy.from_env() == SignaturePolicy(30, 10, 120)

    def test_from_env_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("AGENT_SIG_FRESHNESS_WINDOW", "AGENT_SIG_CLOCK_SKEW", "AGENT_SIG_MAX_VALIDITY"):
            monkeypatch.delenv(name, raising=False)
        assert SignaturePolicy.from_env() == SignaturePolicy()

    def test_from_env_rejects_non_integer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENT_SIG_CLOCK_SKEW", "soon")
        with pytest.raises(ConfigError, match="AGENT_SIG_CLOCK_SKEW"):
            SignaturePolicy.from_env()

    def test_rejects_non_positive(self) -> None:
        with pytest.raises(ConfigError):
            SignaturePolicy(clock_skew=0)

    def test_window_cannot_exceed_max_validity(self) -> None:
        with pytest.raises(ConfigError):
            SignaturePolicy(freshness_window=600, max_validity=300)


class TestTagPolicy:
    def test_default_browser(self) -> None:
        policy = TagPolicy.default()
        assert policy.permits(BROWSER_TAG, "GET")
        assert policy.permits(BROWSER_TAG, "head")
        assert not policy.permits(BROWSER_TAG, "POST")

    def test_default_payer(self) -> None:
        policy = TagPolicy.default()
        for method in ("GET", "POST", "PUT", "DELETE"):
            assert policy.permits(PAYER_TAG, method)

    def test_unknown_or_missing_tag(self) -> None:
        policy = TagPolicy.default()
        assert not policy.permits("agent-admin", "GET")
        assert not policy.permits(None, "GET")

    def test_from_mapping_normalises_methods(self) -> None:
        policy = TagPolicy.from_mapping({"reader": ["get"]})
        assert policy.permits("reader", "GET")
