from enum import Enum
from typing import Optional


class Language(str, Enum):
    """Languages a user can read and write messages in."""

    EN = "en"
    ES = "es"


DEFAULT_LANGUAGE = Language.EN

LANGUAGE_NAMES = {
    Language.EN: "English",
    Language.ES: "Spanish",
}


def parse_language(value: Optional[str]) -> Optional[Language]:
    """Return the Language for a stored code, or None for unknown/missing codes."""
    if not value:
        return None
    try:
        return Language(value)
    except ValueError:
        return None
