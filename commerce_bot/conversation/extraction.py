"""
Field extraction from free-text chat messages.

Each stage of the ordering dialogue needs one structured field out of an
unstructured message: a footwear category, a gender, a product choice, a
size, a pincode or a yes/no answer. Every extractor here is a pure
function that returns the normalized value, or None when the message does
not contain one. None means "re-prompt", never "use a default".

All matching is case-insensitive. Synonym phrases match on word
boundaries so that "women" never matches the masculine "men".
"""

import logging
import re
from typing import Optional, Sequence

from commerce_bot.schemas.collaborator_schema import ProductRecord
from commerce_bot.utils import normalize_text

logger = logging.getLogger(__name__)

# Canonical category -> phrases. Dict order is match priority.
CATEGORY_SYNONYMS: dict[str, list[str]] = {
    "slipper": ["slipper", "slippers", "house shoe", "house shoes", "indoor"],
    "flipflop": [
        "flipflop", "flipflops", "flip flop", "flip flops", "flip-flop", "flip-flops",
        "rubber chappal", "hawai", "chappal", "chappals", "sandal", "sandals",
    ],
    "casual": ["casual", "daily wear", "walking", "sneaker", "sneakers", "loafer", "loafers"],
    "formal": ["formal", "office", "business", "dress shoe", "dress shoes", "oxford", "oxfords"],
    "sports": ["sports", "sport", "running", "gym", "workout", "athletic", "training"],
}

# Canonical gender -> phrases. The last bucket holds self-references,
# which normalize to the neutral "unisex" value.
GENDER_SYNONYMS: dict[str, list[str]] = {
    "male": ["male", "boy", "boys", "man", "men", "mens", "men's", "gents", "him", "husband", "son"],
    "female": [
        "female", "girl", "girls", "woman", "women", "womens", "women's", "ladies", "lady",
        "her", "wife", "daughter",
    ],
    "unisex": ["unisex", "for me", "for myself", "myself", "self", "anyone"],
}

AFFIRMATIVE_PHRASES: list[str] = [
    "yes", "y", "yeah", "yep", "yup", "sure", "ok", "okay", "confirm", "confirmed",
    "go ahead", "place order", "place the order", "do it", "please proceed", "proceed",
]

NEGATIVE_PHRASES: list[str] = [
    "no", "n", "nope", "nah", "cancel", "don't", "dont", "do not", "stop", "not now", "not sure",
    "not really", "not yet", "never mind", "nevermind",
]

MORE_PHRASES: list[str] = [
    "more", "show more", "see more", "next", "other options", "others", "something else",
]

RESTART_COMMANDS: frozenset[str] = frozenset(
    {"/start", "/restart", "restart", "reset", "start over", "start again"}
)

_SIZE_RE = re.compile(r"(?<!\d)(\d{1,2})(?!\d)")
_PINCODE_RE = re.compile(r"(?<!\d)(\d{6})(?!\d)")
_INDEX_RE = re.compile(r"^(?:option|number|no\.?|#)?\s*(\d{1,2})(?:st|nd|rd|th)?$")
MIN_NAME_FRAGMENT_LENGTH = 3


def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(r"(?<![\w'])" + re.escape(phrase) + r"(?![\w'])")


def _compile_table(table: dict[str, list[str]]) -> list[tuple[str, list[re.Pattern[str]]]]:
    return [(key, [_phrase_pattern(p) for p in phrases]) for key, phrases in table.items()]


_CATEGORY_PATTERNS = _compile_table(CATEGORY_SYNONYMS)
_GENDER_PATTERNS = _compile_table(GENDER_SYNONYMS)
_AFFIRMATIVE_PATTERNS = [_phrase_pattern(p) for p in AFFIRMATIVE_PHRASES]
# "not ok", "not sure"... any affirmative preceded by "not" is a no.
_NEGATIVE_PATTERNS = [_phrase_pattern(p) for p in NEGATIVE_PHRASES] + [
    _phrase_pattern(f"not {p}") for p in AFFIRMATIVE_PHRASES
]
_MORE_PATTERNS = [_phrase_pattern(p) for p in MORE_PHRASES]
_MORE_COMMANDS = frozenset(MORE_PHRASES)


def _first_match(text: str, table: list[tuple[str, list[re.Pattern[str]]]]) -> Optional[str]:
    normalized = normalize_text(text)
    for key, patterns in table:
        if any(p.search(normalized) for p in patterns):
            return key
    return None


def extract_category(text: str) -> Optional[str]:
    """Map a message to a canonical footwear category. First category in table order wins."""
    return _first_match(text, _CATEGORY_PATTERNS)


def extract_gender(text: str) -> Optional[str]:
    """Map a message to 'male', 'female' or 'unisex' (self-reference)."""
    return _first_match(text, _GENDER_PATTERNS)


def extract_confirmation(text: str) -> Optional[bool]:
    """
    Classify a yes/no answer.

    Negative phrases are checked first so "don't confirm" or "not sure"
    never reads as agreement. A message matching neither list is None.
    """
    normalized = normalize_text(text)
    if any(p.search(normalized) for p in _NEGATIVE_PATTERNS):
        return False
    if any(p.search(normalized) for p in _AFFIRMATIVE_PATTERNS):
        return True
    return None


def extract_size(text: str) -> Optional[str]:
    """Return the first standalone 1-2 digit run. No shoe-size range check."""
    match = _SIZE_RE.search(text)
    return match.group(1) if match else None


def extract_pincode(text: str) -> Optional[str]:
    """Return the first run of exactly six digits, verbatim."""
    match = _PINCODE_RE.search(text)
    return match.group(1) if match else None


def wants_more(text: str) -> bool:
    """True if the message asks for the next page of products."""
    normalized = normalize_text(text)
    return any(p.search(normalized) for p in _MORE_PATTERNS)


def is_more_command(text: str) -> bool:
    """True if the whole message is a paging phrase, e.g. "more" or "next!"."""
    return normalize_text(text).strip(" .!?") in _MORE_COMMANDS


def is_restart_command(text: str) -> bool:
    return normalize_text(text) in RESTART_COMMANDS


def resolve_selection(text: str, products: Sequence[ProductRecord]) -> Optional[ProductRecord]:
    """
    Resolve a product choice against the last page shown.

    A bare small integer ("2", "option 2", "#2") is a 1-based index; out of
    range is unresolved. A message that is only a paging phrase never
    selects, so "more" pages even past a product called "Moreno Loafer".
    Otherwise the message is matched case-insensitively against the shown
    product names, in either direction of containment.
    """
    if is_more_command(text):
        return None
    normalized = normalize_text(text)
    index_match = _INDEX_RE.match(normalized)
    if index_match:
        index = int(index_match.group(1))
        if 1 <= index <= len(products):
            return products[index - 1]
        logger.debug("Selection index %d out of range (1..%d)", index, len(products))
        return None

    if len(normalized) < MIN_NAME_FRAGMENT_LENGTH:
        return None
    for product in products:
        name = normalize_text(product.name)
        if normalized in name or name in normalized:
            return product
    return None
