"""Tests for tagged envelope serialization."""

from __future__ import annotations

import json

import pytest

from tremolo_agent import AuthEnvelope, Credential, build_auth_headers, encode_envelope
from tremolo_agent.protocol import build_envelope

from .conftest import AUTH_FRAME


class TestAuthEnvelope:
    """Tests for the AuthRequest envelope."""

    def test_wire_format_is_exact(self):
        """Test the encoded frame matches the documented bytes."""
        envelope = AuthEnvelope(Credential(name="Fake Client", token="fake-token"))
        assert envelope.encode() == AUTH_FRAME

    def test_to_dict_single_tag(self):
        """Test the envelope carries exactly one variant tag."""
        envelope = AuthEnvelope(Credential(name="a", token="b"))
        assert envelope.to_dict() == {"AuthRequest": {"name": "a", "token": "b"}}

    def test_envelope_is_frozen(self):
        """Test that envelopes are immutable."""
        envelope = AuthEnvelope(Credential(name="a", token="b"))
        with pytest.raises(AttributeError):
            envelope.credential = Credential(name="c", token="d")  # type: ignore[misc]

    def test_non_ascii_name_stays_utf8(self):
        """Test non-ASCII text is not escaped."""
        envelope = AuthEnvelope(Credential(name="agent-é", token="t"))
        frame = envelope.encode()
        assert "agent-é" in frame
        assert json.loads(frame)["AuthRequest"]["name"] == "agent-é"


class TestEncodeEnvelope:
    """Tests for encode_envelope()."""

    def test_encode_mapping(self):
        """Test plain mappings are encoded compactly."""
        assert encode_envelope(build_envelope("Ping", {"id": 1})) == '{"Ping":{"id":1}}'

    def test_encode_rejects_multiple_tags(self):
        """Test an envelope with two tags is refused."""
        with pytest.raises(ValueError, match="exactly one"):
            encode_envelope({"A": {}, "B": {}})

    def test_encode_rejects_empty(self):
        """Test an untagged envelope is refused."""
        with pytest.raises(ValueError):
            encode_envelope({})


def test_auth_headers():
    """Test upgrade headers carry token and agent name."""
    headers = build_auth_headers(Credential(name="Fake Client", token="fake-token"))
    assert headers == {
        "X-Tremolo-Auth": "fake-token",
        "X-Tremolo-Agent-Name": "Fake Client",
    }
