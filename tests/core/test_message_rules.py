"""
Test suite for message content rules.

System role: Verification of user message validation
"""

import pytest

from companion_chat.core.exceptions import MessageValidationError
from companion_chat.core.message_rules import (
    is_numbers_only,
    looks_like_nonsense,
    validate_message_text,
)


class TestIsNumbersOnly:
    @pytest.mark.parametrize("text", ["12345", "3.14", "1 000", "1.23e+10", " 42 "])
    def test_numbers(self, text: str) -> None:
        assert is_numbers_only(text) is True

    @pytest.mark.parametrize("text", ["I am 12", "abc", "12a", "-5"])
    def test_not_numbers(self, text: str) -> None:
        assert is_numbers_only(text) is False


class TestLooksLikeNonsense:
    @pytest.mark.parametrize(
        "text",
        [
            "hi",  # too short
            "brrrmph",  # no vowels
            "asdfghjkl",  # consonant run
            "heyyyyy there",  # repeated letter
            "xyz",
        ],
    )
    def test_nonsense(self, text: str) -> None:
        assert looks_like_nonsense(text) is True

    @pytest.mark.parametrize(
        "text",
        [
            "I feel a bit anxious today",
            "Kumusta ka?",
            "!!! ???",  # no letters at all
            "strengths",
        ],
    )
    def test_meaningful(self, text: str) -> None:
        # "strengths" has a vowel and at most 5 consecutive consonants
        assert looks_like_nonsense(text) is False


class TestValidateMessageText:
    def test_returns_trimmed_text(self) -> None:
        assert validate_message_text("  Hello there  ") == "Hello there"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_required(self, text) -> None:
        with pytest.raises(MessageValidationError) as exc_info:
            validate_message_text(text)
        assert exc_info.value.code == "BAD_REQUEST"
        assert exc_info.value.status_code == 400

    def test_too_short(self) -> None:
        with pytest.raises(MessageValidationError, match="at least 2"):
            validate_message_text("a")

    def test_too_long(self) -> None:
        with pytest.raises(MessageValidationError, match="at most 10"):
            validate_message_text("hello there friend", max_length=10)

    def test_numbers_only_rejected(self) -> None:
        with pytest.raises(MessageValidationError):
            validate_message_text("123456")

    def test_nonsense_rejected(self) -> None:
        with pytest.raises(MessageValidationError):
            validate_message_text("qwrtpsdfg")
