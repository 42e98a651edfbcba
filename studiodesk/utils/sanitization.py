from typing import Optional

import bleach


def strip_html(value: Optional[str]) -> Optional[str]:
    """
    Remove every HTML tag from public free-text input.
    Returns None if input is None.
    """
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


def validate_and_sanitize_input(value: Optional[str], max_length: int = 5000) -> Optional[str]:
    """Strip markup and enforce a length cap"""
    cleaned = strip_html(value)
    if cleaned is not None and len(cleaned) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")
    return cleaned


ALLOWED_HTML_TAGS = [
    "p", "br", "strong", "em", "u", "a", "ul", "ol", "li",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "table", "thead", "tbody", "tr", "th", "td",
]
ALLOWED_HTML_ATTRIBUTES = {"a": ["href", "title", "target"], "*": ["class"]}


def sanitize_html(value: Optional[str]) -> Optional[str]:
    """Keep basic formatting markup in contract text and drop everything else"""
    if value is None:
        return None
    return bleach.clean(value, tags=ALLOWED_HTML_TAGS, attributes=ALLOWED_HTML_ATTRIBUTES, strip=True)
