"""
Answer checking for practice problems.

Both the submitted and the stored answer are normalised before comparison:
  - surrounding whitespace trimmed
  - lowercased
  - runs of whitespace collapsed to a single space
  - a comma between two digits read as a decimal point ("3,5" == "3.5")
"""

import re

_WHITESPACE = re.compile(r"\s+")
_DECIMAL_COMMA = re.compile(r"(?<=\d),(?=\d)")


def normalize_answer(answer: str) -> str:
    answer = _WHITESPACE.sub(" ", answer.strip().lower())
    return _DECIMAL_COMMA.sub(".", answer)


def check_answer(user_answer: str, correct_answer: str) -> bool:
    """Return True if the two answers match after normalisation."""
    return normalize_answer(user_answer) == normalize_answer(correct_answer)
