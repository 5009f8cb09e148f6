"""
Text helpers shared by the classifier, storage and export paths.
"""

import re
from typing import Any


_LONE_HIGH_SURROGATE = re.compile("[\ud800-\udbff](?![\udc00-\udfff])")
_LONE_LOW_SURROGATE = re.compile("(?<![\ud800-\udbff])[\udc00-\udfff]")


def sanitize_text(text: str) -> str:
    """
    Replace orphaned UTF-16 surrogates with U+FFFD.

    Lone surrogates cannot be encoded to UTF-8, which breaks JSON
    persistence and hashing. Valid high/low pairs are left untouched.

    Args:
        text: Input text (may be None or empty)

    Returns:
        Sanitized text, or "" for falsy input
    """
    if not text:
        return ""

    text = _LONE_HIGH_SURROGATE.sub("\ufffd", text)
    return _LONE_LOW_SURROGATE.sub("\ufffd", text)


def sanitize_data(value: Any) -> Any:
    """Apply sanitize_text to every string (keys included) inside plain data."""
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {sanitize_data(k): sanitize_data(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_data(v) for v in value]
    return value


def simple_hash(text: str) -> str:
    """
    Compute a short base-36 hash of a string.

    Uses the 32-bit ``h * 31 + code`` rolling hash over UTF-16 code units,
    so ids derived from post text stay stable across runs.
    """
    value = 0
    encoded = text.encode("utf-16-le", errors="surrogatepass")
    for i in range(0, len(encoded), 2):
        code = encoded[i] | (encoded[i + 1] << 8)
        value = ((value << 5) - value + code) & 0xFFFFFFFF

    # Reinterpret as signed 32-bit
    if value & 0x80000000:
        value -= 0x100000000

    return _to_base36(abs(value))


def _to_base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"

    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def derive_post_id(content: str) -> str:
    """Derive a fallback post id from its text."""
    return "hash_" + simple_hash(sanitize_text(content or ""))


def format_category_label(category_id: str) -> str:
    """
    Format a category id as a sentence-case label.

    Example: "thought_leadership" -> "Thought leadership"
    """
    if not category_id:
        return ""

    label = category_id.replace("_", " ")
    label = re.sub(r"([a-z])([A-Z])", r"\1 \2", label)
    label = re.sub(r"\s+", " ", label.lower()).strip()

    if not label:
        return ""
    return label[0].upper() + label[1:]
