import re

# Magnitude and currency tokens written after a number: 45k, 2tr, 100đ, 2 triệu, 1 củ...
_SUFFIX_TOKENS = (
    "k",
    "tr",
    "đ",
    "₫",
    "vnd",
    "vnđ",
    "nghìn",
    "nghin",
    "ngàn",
    "triệu",
    "trieu",
    "củ",
    "cu",
    "thousand",
    "million",
)

_SUFFIXED_AMOUNT = re.compile(
    r"\d+\s*(?:" + "|".join(re.escape(token) for token in _SUFFIX_TOKENS) + r")(?!\w)",
    re.IGNORECASE,
)

# 200.000, 1,500,000 - every group after the separator is exactly three digits.
_GROUPED_AMOUNT = re.compile(r"\d{2,3}(?:[.,]\d{3})+(?!\d)")


def looks_like_monetary_text(text: str | None) -> bool:
    """
    Cheap gate deciding whether a chat message should go to the transaction parser.

    True means "try structured parsing", False means "treat it as conversation".
    """
    if not text:
        return False
    return bool(_SUFFIXED_AMOUNT.search(text) or _GROUPED_AMOUNT.search(text))
