"""
Poll form validation.

A topic form may carry an optional poll as three loosely-coupled fields:
a title, the items as newline-separated text, and an ending date string.
``validate_poll`` checks them as a whole and returns every violation found,
keyed by the offending field, so the form can show all errors at once.
"""
from dataclasses import dataclass
from datetime import datetime, timezone

from forum.config import settings

POLL_DATE_FORMAT = "%d-%m-%Y"

TITLE_FIELD = "poll_title"
ITEMS_FIELD = "poll_items"
ENDING_DATE_FIELD = "poll_ending_date"


@dataclass(frozen=True)
class PollLimits:
    min_items: int
    max_items: int
    min_item_length: int
    max_item_length: int

    @classmethod
    def from_settings(cls) -> "PollLimits":
        return cls(
            min_items=settings.POLL_MIN_ITEMS,
            max_items=settings.POLL_MAX_ITEMS,
            min_item_length=settings.POLL_ITEM_MIN_LENGTH,
            max_item_length=settings.POLL_ITEM_MAX_LENGTH,
        )


@dataclass(frozen=True)
class PollViolation:
    field: str
    message: str


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def parse_poll_items(text: str | None) -> list[str]:
    """One item per non-blank line, surrounding whitespace trimmed."""
    if _is_blank(text):
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_ending_date(value: str) -> datetime:
    """Parse a ``dd-mm-YYYY`` ending date as midnight UTC."""
    return datetime.strptime(value.strip(), POLL_DATE_FORMAT).replace(tzinfo=timezone.utc)


def _check_title_and_items(title, items_text) -> list[PollViolation]:
    if not _is_blank(title) and _is_blank(items_text):
        return [PollViolation(ITEMS_FIELD, "Poll items must not be blank when a poll title is given")]
    if _is_blank(title) and not _is_blank(items_text):
        return [PollViolation(TITLE_FIELD, "Poll title must not be blank when poll items are given")]
    return []


def _check_items_number(title, items: list[str], limits: PollLimits) -> list[PollViolation]:
    # Without a title no poll is created, so the count does not matter.
    if _is_blank(title):
        return []
    if limits.min_items <= len(items) <= limits.max_items:
        return []
    return [
        PollViolation(
            ITEMS_FIELD,
            f"A poll must have between {limits.min_items} and {limits.max_items} items",
        )
    ]


def _check_items_length(items: list[str], limits: PollLimits) -> list[PollViolation]:
    return [
        PollViolation(
            ITEMS_FIELD,
            f"Poll item {item!r} must be between {limits.min_item_length} "
            f"and {limits.max_item_length} characters long",
        )
        for item in items
        if not limits.min_item_length <= len(item) <= limits.max_item_length
    ]


def _check_ending_date(ending_date: str | None, now: datetime) -> list[PollViolation]:
    if _is_blank(ending_date):
        return []
    try:
        parsed = parse_ending_date(ending_date)
    except ValueError:
        return [PollViolation(ENDING_DATE_FIELD, "Ending date must be in dd-mm-yyyy format")]
    if parsed <= now:
        return [PollViolation(ENDING_DATE_FIELD, "Ending date must be in the future")]
    return []


def validate_poll(
    title: str | None,
    items_text: str | None,
    ending_date: str | None,
    limits: PollLimits | None = None,
    now: datetime | None = None,
) -> list[PollViolation]:
    """Return all violations of the poll form rules; empty when valid."""
    limits = limits or PollLimits.from_settings()
    now = now or datetime.now(timezone.utc)
    items = parse_poll_items(items_text)

    return (
        _check_items_number(title, items, limits)
        + _check_ending_date(ending_date, now)
        + _check_title_and_items(title, items_text)
        + _check_items_length(items, limits)
    )
