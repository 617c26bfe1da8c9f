"""Display cleanup for OCR'd chunk content."""
import html
import re

_PATTERNS = [
    (re.compile(r"<[^>]*$"), ""),                                   # Broken tag at the end
    (re.compile(r"^[^<]*>"), ""),                                   # Broken tag at the start
    (re.compile(r"<[^>]*>"), " "),                                  # Complete tags
    (re.compile(r'data-[a-z]+="[^"]*"', re.IGNORECASE), ""),        # data-* attributes
    (re.compile(r"data-[a-z]+=\S+", re.IGNORECASE), ""),
    (re.compile(r'"[\d\s]+"'), ""),                                 # Quoted coordinate remnants
    (re.compile(r"!\[.*?\]\(.*?\)"), ""),                           # Markdown images
    (re.compile(r"data:image/[^;]+;base64,[A-Za-z0-9+/=]+"), ""),   # Inline base64 images
    (re.compile(r"[A-Za-z0-9+/]{20,}={0,2}"), ""),                  # Orphaned base64
    (re.compile(r"\|\s*\|"), " "),                                  # Empty table cells
    (re.compile(r"\|-+\|"), ""),                                    # Table rules
    (re.compile(r"\d{2,}\s+\d{2,}\s+\d{2,}\s+\d{2,}"), ""),         # Bounding boxes
]

_WHITESPACE = re.compile(r"\s+")


def clean_content(content: str) -> str:
    """
    Strip OCR and HTML residue from chunk text for display.

    The index keeps the raw content; this only affects what is shown.

    Args:
        content: Raw chunk content

    Returns:
        Cleaned single-spaced text
    """
    if not content:
        return ""

    cleaned = content
    for pattern, replacement in _PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)

    cleaned = html.unescape(cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()
