"""URL-safe slug generation utilities."""

import re
import unicodedata


def slugify(text: str) -> str:
    """Convert text to a URL-safe slug (lowercase, hyphens, no special chars).

    Accented letters are folded to ASCII first, then every run of
    non-alphanumeric characters becomes a single hyphen.

    Args:
        text: Text to slugify (e.g. "Shai Gilgeous-Alexander").

    Returns:
        Slugified text (e.g. "shai-gilgeous-alexander").
    """
    text = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")
