"""Word counting and word-budget classification. Pure functions, no deps."""

from dataclasses import dataclass
from enum import Enum

DEFAULT_WORD_LIMIT = 200

# Percentage of the limit at which the budget turns to a warning.
_WARNING_PERCENT = 90.0


class LimitBand(str, Enum):
    NOMINAL = "nominal"
    WARNING = "warning"
    OVER_LIMIT = "over_limit"


# Display colour per band (green / orange / red).
BAND_COLORS: dict[LimitBand, str] = {
    LimitBand.NOMINAL: "#4CAF50",
    LimitBand.WARNING: "#FF9800",
    LimitBand.OVER_LIMIT: "#F44336",
}


@dataclass(frozen=True)
class WordCountStatus:
    band: LimitBand
    is_over_limit: bool

    @property
    def color(self) -> str:
        return BAND_COLORS[self.band]


def count_words(text: str | None) -> int:
    """Count whitespace-separated words. Empty or whitespace-only text is 0."""
    if not text:
        return 0
    return len(text.split())


def classify(count: int, limit: int = DEFAULT_WORD_LIMIT) -> WordCountStatus:
    """Classify a word count against a limit.

    Under 90% of the limit is nominal, 90% up to and including the limit is
    a warning, anything above the limit is over-limit.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    is_over_limit = count > limit
    if is_over_limit:
        band = LimitBand.OVER_LIMIT
    elif count * 100.0 / limit >= _WARNING_PERCENT:
        band = LimitBand.WARNING
    else:
        band = LimitBand.NOMINAL
    return WordCountStatus(band=band, is_over_limit=is_over_limit)
