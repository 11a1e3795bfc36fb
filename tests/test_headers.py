"""Tests for the Signature-Input / Signature codec."""

import pytest

from agent_sig.crypto import b64encode
from agent_sig.headers import (
    ParsedSignature,
    ParseFailure,
    SignatureParameters,
    format_signature,
    format_signature_input,
    parse_signature_headers,
    serialize_params,
)

PARAMS = SignatureParameters(
    components=("@authority", "@path"),
    created=1000,
    expires=1060,
    keyid="agent-42",
    alg="ed25519",
    nonce="ab12",
    tag="agent-browser-auth",
)
PARAMS_STR = (
    '("@authority" "@path"); created=1000; expires=1060; keyid="agent-42"; '
    'alg="ed25519"; nonce="ab12"; tag="agent-browser-auth"'
)
SIG = bytes(range(64))
SIG_HEADER = f"sig1=:{b64encode(SIG)}:"


def _parse(signature_input: str, signature: str = SIG_HEADER):
    return parse_signature_headers(signature_input, signature)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

class TestSerialize:
    def test_reference_format(self) -> None:
        assert serialize_params(PARAMS) == PARAMS_STR

    def test_signature_input_header(self) -> None:
        assert format_signature_input(PARAMS_STR) == f"sig1={PARAMS_STR}"

    def test_signature_header(self) -> None:
        assert format_signature(b"\x01\x02") == "sig1=:AQI=:"

    def test_optional_fields_omitted(self) -> None:
        params = SignatureParameters(("@path",), 1, 2, "k", "ed25519")
        assert serialize_params(params) == '("@path"); created=1; expires=2; keyid="k"; alg="ed25519"'

    def test_rejects_quote_in_value(self) -> None:
        params = SignatureParameters(("@path",), 1, 2, 'k"; alg="none', "ed25519")
        with pytest.raises(ValueError):
            serialize_params(params)

    def test_requires_timestamps(self) -> None:
        params = SignatureParameters(("@path",), None, 2, "k", "ed25519")
        with pytest.raises(ValueError):
            serialize_params(params)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParse:
    def test_parses_reference_headers(self) -> None:
        result = _parse(f"sig1={PARAMS_STR}")
        assert isinstance(result, ParsedSignature)
        assert result.params == PARAMS
        assert result.signature == SIG

    def test_params_substring_is_verbatim(self) -> None:
        # Extra whitespace survives untouched so the base matches the wire
        odd = '("@authority"  "@path");created=1000;  expires=1060; keyid="agent-42"; alg="ed25519"'
        result = _parse(f"sig1={odd}")
        assert isinstance(result, ParsedSignature)
        assert result.signature_params == odd
        assert result.params.components == ("@authority", "@path")

    def test_round_trip_through_serializer(self) -> None:
        result = _parse(format_signature_input(serialize_params(PARAMS)), format_signature(SIG))
        assert isinstance(result, ParsedSignature)
        assert result.params == PARAMS
        assert result.signature_params == PARAMS_STR

    def test_unknown_parameters_ignored(self) -> None:
        result = _parse(f'sig1={PARAMS_STR}; extra="x"')
        assert isinstance(result, ParsedSignature)

    def test_missing_timestamps_parse_as_none(self) -> None:
        result = _parse('sig1=("@authority" "@path"); keyid="k"; alg="ed25519"')
        assert isinstance(result, ParsedSignature)
        assert result.params.created is None
        assert result.params.expires is None

    def test_quoted_timestamp_parses_as_none(self) -> None:
        result = _parse('sig1=("@path"); created="1000"; expires=1060; keyid="k"; alg="ed25519"')
        assert isinstance(result, ParsedSignature)
        assert result.params.created is None
        assert result.params.expires == 1060

    @pytest.mark.parametrize(
        "signature_input",
        [
            PARAMS_STR,  # no label
            f"sig2={PARAMS_STR}",  # wrong label
            'sig1="@authority" "@path"; created=1; expires=2; keyid="k"; alg="ed25519"',
            'sig1=("@authority" "@path"; created=1; expires=2; keyid="k"; alg="ed25519"',
            'sig1=(); created=1; expires=2; keyid="k"; alg="ed25519"',
            'sig1=(@authority); created=1; expires=2; keyid="k"; alg="ed25519"',
            'sig1=("@path"); created=abc; expires=2; keyid="k"; alg="ed25519"',
            'sig1=("@path"); created=1; expires=2x; keyid="k"; alg="ed25519"',
            'sig1=("@path"); created=1; expires=2; keyid="k',
            'sig1=("@path"); created=1; expires=2; alg="ed25519"',
            'sig1=("@path"); created=1; expires=2; keyid="k"',
            'sig1=("@path"); created=1; created=2; keyid="k"; alg="ed25519"',
            'sig1=("@path") created=1; keyid="k"; alg="ed25519"',
            "",
        ],
    )
    def test_malformed_signature_input(self, signature_input: str) -> None:
        result = _parse(signature_input)
        assert isinstance(result, ParseFailure)
        assert result.message

    @pytest.mark.parametrize(
        "signature",
        [
            b64encode(SIG),
            f"sig1={b64encode(SIG)}",
            f"sig1=:{b64encode(SIG)}",
            f"sig2=:{b64encode(SIG)}:",
            "sig1=:not*base64:",
            "sig1=::",
            "",
        ],
    )
    def test_malformed_signature(self, signature: str) -> None:
        assert isinstance(_parse(f"sig1={PARAMS_STR}", signature), ParseFailure)
