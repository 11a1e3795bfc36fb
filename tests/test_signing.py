"""Tests for outbound request signing."""

import time

import pytest

from agent_sig.canonical import build_signature_base
from agent_sig.crypto import ed25519_verify, generate_keypair
from agent_sig.headers import ParsedSignature, parse_signature_headers
from agent_sig.signing import sign_request

AUTHORITY = "localhost:8000"
PATH = "/api/products?q=laptop"


def _parse(headers: dict[str, str]) -> ParsedSignature:
    result = parse_signature_headers(headers["Signature-Input"], headers["Signature"])
    assert isinstance(result, ParsedSignature)
    return result


class TestSignRequest:
    def test_returns_required_headers(self) -> None:
        priv, _ = generate_keypair()
        headers = sign_request(priv, AUTHORITY, PATH, "agent-42")
        assert set(headers) == {"Signature-Input", "Signature", "Signature-Agent"}
        assert headers["Signature-Input"].startswith('sig1=("@authority" "@path"); created=')
        assert headers["Signature"].startswith("sig1=:")
        assert headers["Signature"].endswith(":")

    def test_reference_params(self) -> None:
        priv, _ = generate_keypair()
        headers = sign_request(
            priv, AUTHORITY, PATH, "agent-42", created=1000, nonce="ab12",
        )
        assert headers["Signature-Input"] == (
            'sig1=("@authority" "@path"); created=1000; expires=1060; keyid="agent-42"; '
            'alg="ed25519"; nonce="ab12"; tag="agent-browser-auth"'
        )

    def test_default_window_is_sixty_seconds(self) -> None:
        priv, _ = generate_keypair()
        before = int(time.time())
        params = _parse(sign_request(priv, AUTHORITY, PATH, "k")).params
        assert params.created is not None and params.expires is not None
        assert before <= params.created <= int(time.time())
        assert params.expires - params.created == 60

    def test_custom_window_and_tag(self) -> None:
        priv, _ = generate_keypair()
        params = _parse(
            sign_request(priv, AUTHORITY, PATH, "k", tag="agent-payer-auth", window=120, created=50)
        ).params
        assert params.expires == 170
        assert params.tag == "agent-payer-auth"

    def test_fresh_nonce_per_call(self) -> None:
        priv, _ = generate_keypair()
        n1 = _parse(sign_request(priv, AUTHORITY, PATH, "k")).params.nonce
        n2 = _parse(sign_request(priv, AUTHORITY, PATH, "k")).params.nonce
        assert n1 != n2
        assert n1 is not None and len(n1) == 32
        int(n1, 16)

    def test_signature_covers_base(self) -> None:
        priv, pub = generate_keypair()
        headers = sign_request(priv, AUTHORITY, PATH, "k")
        parsed = _parse(headers)
        base = build_signature_base(
            parsed.params.components,
            {"@authority": AUTHORITY, "@path": PATH},
            parsed.signature_params,
        )
        assert ed25519_verify(pub, base.encode("utf-8"), parsed.signature) is True

    def test_signature_does_not_cover_other_path(self) -> None:
        priv, pub = generate_keypair()
        parsed = _parse(sign_request(priv, AUTHORITY, PATH, "k"))
        base = build_signature_base(
            parsed.params.components,
            {"@authority": AUTHORITY, "@path": "/api/products"},
            parsed.signature_params,
        )
        assert ed25519_verify(pub, base.encode("utf-8"), parsed.signature) is False

    def test_signature_agent_defaults_to_key_id(self) -> None:
        priv, _ = generate_keypair()
        assert sign_request(priv, AUTHORITY, PATH, "k")["Signature-Agent"] == "k"
        named = sign_request(priv, AUTHORITY, PATH, "k", agent_name="shopper")
        assert named["Signature-Agent"] == "shopper"

    def test_unsupported_algorithm(self) -> None:
        priv, _ = generate_keypair()
        with pytest.raises(ValueError, match="Unsupported algorithm"):
            sign_request(priv, AUTHORITY, PATH, "k", algorithm="rsa-pss-sha512")

    def test_expires_must_follow_created(self) -> None:
        priv, _ = generate_keypair()
        with pytest.raises(ValueError):
            sign_request(priv, AUTHORITY, PATH, "k", created=100, expires=100)

    def test_private_key_not_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        priv, _ = generate_keypair()
        with caplog.at_level("DEBUG", logger="agent_sig.signing"):
            sign_request(priv, AUTHORITY, PATH, "k")
        assert caplog.records
        text = caplog.text
        assert priv.hex() not in text
        assert '"@path": /api/products?q=laptop' in text
