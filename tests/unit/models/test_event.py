"""
Unit tests for models.event module.

Tests:
- UnsignedEvent construction, type validation and tag freezing
- SignedEvent.unsigned(), to_dict(), to_json()
- SignedEvent.from_dict() / from_json() parsing and error cases
- Immutability
"""

import dataclasses
import json

import pytest

from nostrkit.models import SignedEvent, UnsignedEvent


PUBKEY = "a" * 64


def _event_dict(**overrides):
    data = {
        "id": "1" * 64,
        "pubkey": PUBKEY,
        "created_at": 1_700_000_000,
        "kind": 1,
        "tags": [["e", "2" * 64]],
        "content": "hi",
        "sig": "3" * 128,
    }
    data.update(overrides)
    return data


class TestUnsignedEventConstruction:
    """UnsignedEvent field validation."""

    def test_basic_fields(self):
        event = UnsignedEvent(content="hi", created_at=1, kind=0, pubkey=PUBKEY)
        assert event.content == "hi"
        assert event.created_at == 1
        assert event.kind == 0
        assert event.tags == ()

    def test_tags_frozen_to_tuples(self):
        event = UnsignedEvent(content="", created_at=1, kind=1, pubkey=PUBKEY, tags=[["t", "x"]])
        assert event.tags == (("t", "x"),)
        assert event.tags_as_lists() == [["t", "x"]]

    def test_negative_kind_rejected(self):
        with pytest.raises(ValueError, match="kind"):
            UnsignedEvent(content="", created_at=1, kind=-1, pubkey=PUBKEY)

    def test_bool_created_at_rejected(self):
        with pytest.raises(TypeError, match="created_at"):
            UnsignedEvent(content="", created_at=True, kind=1, pubkey=PUBKEY)

    def test_non_str_content_rejected(self):
        with pytest.raises(TypeError, match="content"):
            UnsignedEvent(content=5, created_at=1, kind=1, pubkey=PUBKEY)

    def test_non_str_tag_value_rejected(self):
        with pytest.raises(TypeError, match=r"tags\[0\]\[1\]"):
            UnsignedEvent(content="", created_at=1, kind=1, pubkey=PUBKEY, tags=[["e", 1]])

    def test_tags_must_be_sequence(self):
        with pytest.raises(TypeError, match="tags"):
            UnsignedEvent(content="", created_at=1, kind=1, pubkey=PUBKEY, tags="e")

    def test_pubkey_format_not_checked_here(self):
        """Malformed pubkeys are representable; nip01.validate_event rejects them."""
        event = UnsignedEvent(content="", created_at=1, kind=1, pubkey="XYZ")
        assert event.pubkey == "XYZ"

    def test_frozen(self):
        event = UnsignedEvent(content="", created_at=1, kind=1, pubkey=PUBKEY)
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.content = "changed"


class TestSignedEventSerialization:
    """SignedEvent wire form."""

    def test_to_dict_keys(self):
        event = SignedEvent.from_dict(_event_dict())
        assert event.to_dict() == _event_dict()

    def test_to_json_is_compact(self):
        text = SignedEvent.from_dict(_event_dict()).to_json()
        assert " " not in text.replace('"hi"', "")
        assert json.loads(text) == _event_dict()

    def test_to_json_keeps_unicode(self):
        event = SignedEvent.from_dict(_event_dict(content="héllo ✓"))
        assert "héllo ✓" in event.to_json()

    def test_unsigned_drops_id_and_sig(self):
        event = SignedEvent.from_dict(_event_dict())
        unsigned = event.unsigned()
        assert type(unsigned) is UnsignedEvent
        assert unsigned.tags == event.tags
        assert unsigned.pubkey == event.pubkey

    def test_equality_and_hash(self):
        a = SignedEvent.from_dict(_event_dict())
        b = SignedEvent.from_json(json.dumps(_event_dict()))
        assert a == b
        assert hash(a) == hash(b)


class TestSignedEventParsing:
    """SignedEvent.from_dict() and from_json() error handling."""

    def test_missing_field(self):
        data = _event_dict()
        del data["sig"]
        with pytest.raises(ValueError, match="sig"):
            SignedEvent.from_dict(data)

    def test_not_a_mapping(self):
        with pytest.raises(TypeError, match="event"):
            SignedEvent.from_dict(["EVENT"])

    def test_wrong_field_type(self):
        with pytest.raises(TypeError, match="kind"):
            SignedEvent.from_dict(_event_dict(kind="1"))

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            SignedEvent.from_json("{not json")

    def test_non_str_id(self):
        with pytest.raises(TypeError, match="id"):
            SignedEvent.from_dict(_event_dict(id=None))
