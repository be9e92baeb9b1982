import re
from typing import List, Optional

from env import MAX_SEARCH_QUERY_LENGTH

_PARENTHETICAL_RE = re.compile(r"\([^()]*\)")

# "100ml", "3.4 fl oz", "500 g", "2 pack", "x12"
_SIZE_TOKEN_RE = re.compile(
    r"""
    (?<![\w.])
    (?:x\s?\d+
      |\d+(?:[.,]\d+)?\s?(?:fl\.?\s?oz|ml|cl|dl|l|ltr|g|gr|kg|mg|oz|lb|lbs|ct|count|pcs|pack|pk)
    )
    (?![\w])
    """,
    re.IGNORECASE | re.VERBOSE,
)
_WHITESPACE_RE = re.compile(r"\s+")


def strip_parentheticals(text: str) -> str:
    """Remove parenthetical content, innermost groups first so nesting is handled."""
    previous = None
    while previous != text:
        previous = text
        text = _PARENTHETICAL_RE.sub("", text)
    return text


def normalize_ingredients(raw: Optional[str]) -> List[str]:
    """
    Convert raw ingredient text into canonical lowercase tokens.

    "Water (Aqua), Glycerin" -> ["water", "glycerin"]. Parentheses are stripped
    before splitting so commas inside them never produce tokens.
    """
    if not raw:
        return []

    cleaned = strip_parentheticals(raw)
    tokens = []
    for part in cleaned.split(","):
        token = _WHITESPACE_RE.sub(" ", part).strip().lower()
        if token:
            tokens.append(token)
    return tokens


def sanitize_search_query(name: Optional[str], max_length: int = MAX_SEARCH_QUERY_LENGTH) -> str:
    """Turn a catalog product title into a name-search query."""
    if not name:
        return ""

    query = strip_parentheticals(name)
    query = _SIZE_TOKEN_RE.sub(" ", query)
    query = _WHITESPACE_RE.sub(" ", query).strip(" -,/|")

    if len(query) <= max_length:
        return query

    # cut on a word boundary
    truncated = query[:max_length]
    if " " in truncated:
        truncated = truncated.rsplit(" ", 1)[0]
    return truncated.strip(" -,/|")
