"""
Content rules for user-authored chat messages.

Rejects empty, over-long, numbers-only and keyboard-smash input before it
reaches the sequencer.

Dependencies: companion_chat.core.exceptions
System role: Message text validation
"""

import re

from companion_chat.core.exceptions import MessageValidationError

MIN_MESSAGE_LENGTH = 2

_VOWELS = re.compile(r"[aeiou]")
_LETTERS = re.compile(r"[a-z]")
_CONSONANT_RUN = re.compile(r"[bcdfghjklmnpqrstvwxyz]{6,}")
_REPEATED_LETTER = re.compile(r"([a-z])\1{4,}")
_NUMBER = re.compile(r"^\d+(\.\d+)?([eE][+-]?\d+)?$")
_WHITESPACE = re.compile(r"\s+")


def is_numbers_only(text: str) -> bool:
    """True when the text, whitespace removed, is a plain or scientific-notation number."""
    return bool(_NUMBER.match(_WHITESPACE.sub("", text.strip())))


def looks_like_nonsense(text: str) -> bool:
    """
    Heuristic keyboard-smash detector.

    Flags text shorter than three characters. Text without letters passes.
    Otherwise flags text with no vowels, six or more consecutive consonants,
    or a letter repeated five or more times in a row.
    """
    normalized = text.strip().lower()
    if len(normalized) < 3:
        return True
    if not _LETTERS.search(normalized):
        return False
    if not _VOWELS.search(normalized):
        return True
    if _CONSONANT_RUN.search(normalized):
        return True
    return bool(_REPEATED_LETTER.search(normalized))


def validate_message_text(text: str | None, max_length: int = 2000) -> str:
    """
    Validate and normalize user message text.

    Args:
        text: Raw message text from the request body
        max_length: Maximum accepted length after trimming

    Returns:
        Trimmed message text

    Raises:
        MessageValidationError: Text is missing, too short, too long,
            numbers-only or nonsense
    """
    if text is None or not isinstance(text, str):
        raise MessageValidationError("Message is required", field="message")

    trimmed = text.strip()
    if not trimmed:
        raise MessageValidationError("Message is required", field="message")
    if len(trimmed) < MIN_MESSAGE_LENGTH:
        raise MessageValidationError(
            f"Message must be at least {MIN_MESSAGE_LENGTH} characters long",
            field="message",
        )
    if len(trimmed) > max_length:
        raise MessageValidationError(
            f"Message must be at most {max_length} characters long",
            field="message",
        )
    if is_numbers_only(trimmed):
        raise MessageValidationError(
            "Message cannot contain only numbers", field="message"
        )
    if looks_like_nonsense(trimmed):
        raise MessageValidationError(
            "Message does not look like a meaningful sentence", field="message"
        )
    return trimmed
