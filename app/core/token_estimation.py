from __future__ import annotations


def count_whitespace_words(text: str) -> int:
    """Approximate an eval token count as the number of whitespace-separated words."""
    if not text:
        return 0

    return len(text.split())
