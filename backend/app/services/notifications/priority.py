"""Priority and frequency normalization. Ordering: low < normal < high < critical."""
from app.core.constants import DEFAULT_FREQUENCY, DEFAULT_PRIORITY, FREQUENCIES, PRIORITY_WEIGHTS


def normalize_priority(priority: str | None) -> str:
    """Unrecognized or missing priorities become 'normal'."""
    if priority in PRIORITY_WEIGHTS:
        return priority
    return DEFAULT_PRIORITY


def normalize_frequency(frequency: str | None) -> str:
    if frequency in FREQUENCIES:
        return frequency
    return DEFAULT_FREQUENCY


def priority_weight(priority: str | None) -> int:
    return PRIORITY_WEIGHTS[normalize_priority(priority)]


def max_priority(a: str, b: str) -> str:
    return a if priority_weight(a) >= priority_weight(b) else b


def meets_min_priority(priority: str, min_priority: str) -> bool:
    return priority_weight(priority) >= priority_weight(min_priority)
