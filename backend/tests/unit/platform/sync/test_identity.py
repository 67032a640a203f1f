"""Tests for deterministic point ids."""

import uuid
from unittest.mock import MagicMock

import pytest

from relsync.platform.sync.exceptions import IdentityError
from relsync.platform.sync.identity import (
    NAMESPACE,
    is_canonical_uuid,
    map_identity,
    validate_point_ids,
)


def test_same_key_maps_to_same_id():
    first = map_identity("P-100")
    second = map_identity("  P-100 ")

    assert first.point_id == second.point_id
    assert first.point_id == str(uuid.uuid5(NAMESPACE, "P-100"))
    assert first.deterministic is True


def test_numeric_and_string_keys_share_ids():
    assert map_identity(42).point_id == map_identity("42").point_id


def test_distinct_keys_map_to_distinct_ids():
    assert map_identity("A").point_id != map_identity("B").point_id


@pytest.mark.parametrize("value", [None, "", "   "])
def test_empty_key_gets_fallback_identity(value):
    logger = MagicMock()

    identity = map_identity(value, position=3, logger=logger)

    assert identity.deterministic is False
    assert identity.source_key.startswith("fallback-")
    assert identity.source_key.endswith("-3")
    assert is_canonical_uuid(identity.point_id)
    logger.warning.assert_called_once()


def test_canonical_uuid_check():
    assert is_canonical_uuid(str(uuid.uuid4()))
    assert not is_canonical_uuid(str(uuid.uuid4()).upper())
    assert not is_canonical_uuid("12345")


def test_validate_point_ids_raises_identity_error():
    with pytest.raises(IdentityError) as exc_info:
        validate_point_ids([str(uuid.uuid4()), "bad-id"], ["A", "B"])

    assert exc_info.value.record_ids == ["A", "B"]
    assert "bad-id" in exc_info.value.message
