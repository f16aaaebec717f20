import html
import re
from typing import Optional

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_text(value: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Clean free text shown on the teesheet (notes, private messages).
    Escapes HTML, strips control characters and surrounding whitespace.
    Returns None for empty input.

    Raises:
        ValueError: If the text exceeds max_length
    """
    if value is None:
        return None

    value = str(value).strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    value = html.escape(value, quote=True)
    return CONTROL_CHARS.sub("", value)


def sanitize_label(value: Optional[str], max_length: int = 100) -> Optional[str]:
    """
    Single-line label such as a custom fill name.
    The limit applies to the escaped value, which is what gets stored.
    """
    value = sanitize_text(value, max_length=max_length)
    if value is None:
        return None
    value = " ".join(value.split())
    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters once escaped")
    return value
