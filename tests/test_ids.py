import re

import pytest

from agentsdk.ids import generate_uuid, short_id

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


@pytest.mark.parametrize("attempt", range(20))
def test_uuid_format_version_and_variant(attempt):
    value = generate_uuid()
    assert len(value) == 36
    assert value[14] == "4"
    assert value[19] in "89ab"
    assert UUID_RE.fullmatch(value)


def test_uuids_are_unique():
    ids = {generate_uuid() for _ in range(500)}
    assert len(ids) == 500


def test_short_id_default_length():
    assert len(short_id()) == 8


@pytest.mark.parametrize("length", [0, 1, 16, 40])
def test_short_id_length_and_charset(length):
    value = short_id(length)
    assert len(value) == length
    assert re.fullmatch(r"[0-9a-z]*", value)


def test_short_id_negative_length_rejected():
    with pytest.raises(ValueError):
        short_id(-1)