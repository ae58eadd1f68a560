"""
Poll form rules: evaluated without a database.
"""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from forum.schemas import TopicCreate
from forum.validation import (
    ENDING_DATE_FIELD,
    ITEMS_FIELD,
    TITLE_FIELD,
    PollLimits,
    parse_poll_items,
    validate_poll,
)

LIMITS = PollLimits(min_items=2, max_items=3, min_item_length=2, max_item_length=10)
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _fields(violations) -> list[str]:
    return [v.field for v in violations]


def test_parse_poll_items_skips_blank_lines():
    assert parse_poll_items("  red \n\n green\n   \nblue") == ["red", "green", "blue"]
    assert parse_poll_items(None) == []
    assert parse_poll_items("   ") == []


def test_no_poll_is_valid():
    assert validate_poll(None, None, None, LIMITS, NOW) == []
    assert validate_poll("  ", "", None, LIMITS, NOW) == []


def test_valid_poll():
    assert validate_poll("Colour?", "red\ngreen", "20-01-2026", LIMITS, NOW) == []


def test_title_without_items():
    violations = validate_poll("Colour?", "", None, LIMITS, NOW)

    assert ITEMS_FIELD in _fields(violations)
    assert TITLE_FIELD not in _fields(violations)


def test_items_without_title():
    violations = validate_poll("", "red\ngreen", None, LIMITS, NOW)

    assert _fields(violations) == [TITLE_FIELD]


@pytest.mark.parametrize("items", ["red", "red\ngreen\nblue\nwhite"])
def test_item_count_out_of_range(items):
    violations = validate_poll("Colour?", items, None, LIMITS, NOW)

    assert _fields(violations) == [ITEMS_FIELD]
    assert "between 2 and 3 items" in violations[0].message


def test_each_item_with_bad_length_is_reported():
    violations = validate_poll("Colour?", "r\ngreen\nultraviolet", None, LIMITS, NOW)

    assert _fields(violations) == [ITEMS_FIELD, ITEMS_FIELD]


def test_ending_date_in_the_past():
    violations = validate_poll("Colour?", "red\ngreen", "14-01-2026", LIMITS, NOW)

    assert _fields(violations) == [ENDING_DATE_FIELD]


def test_ending_date_malformed():
    violations = validate_poll("Colour?", "red\ngreen", "2026-01-20", LIMITS, NOW)

    assert _fields(violations) == [ENDING_DATE_FIELD]
    assert "dd-mm-yyyy" in violations[0].message


def test_violations_accumulate():
    violations = validate_poll("", "x", "01-01-2000", LIMITS, NOW)

    assert set(_fields(violations)) == {TITLE_FIELD, ITEMS_FIELD, ENDING_DATE_FIELD}


def test_topic_schema_rejects_invalid_poll():
    with pytest.raises(ValidationError) as exc_info:
        TopicCreate(title="Topic", body="Body", poll_title="Only title")

    assert "poll_items" in str(exc_info.value)


def test_topic_schema_accepts_poll():
    data = TopicCreate(title="Topic", body="Body", poll_title="Colour?", poll_items="red\ngreen")

    assert data.has_poll
