import re

_WHITESPACE = re.compile(r"\s+")

VALID_OUTCOMES = ("done", "missed")
VALID_REPEAT_RULES = ("once", "daily", "weekly", "custom")


def normalize_title(title) -> str:
    """Collapse internal whitespace and strip the ends"""
    return _WHITESPACE.sub(" ", str(title or "")).strip()


def title_key(title) -> str:
    """Case-insensitive comparison key for titles"""
    return normalize_title(title).lower()


def is_valid_outcome(outcome: str) -> bool:
    return outcome in VALID_OUTCOMES


def is_valid_repeat(repeat: str) -> bool:
    return repeat in VALID_REPEAT_RULES
