"""Rule-based slot extraction from free-text chat messages.

``extract_slot_value`` is pure: it never raises for unrecognised input
and returns ``NOT_CAPTURED`` instead, leaving escalation to the caller.
"""

import re
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from juno.domains.planner.schemas import DateRange, Pace, Slot


class _NotCaptured(Enum):
    TOKEN = "not_captured"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_CAPTURED"


NOT_CAPTURED = _NotCaptured.TOKEN


# ============ Vocabularies ============

ACCOMMODATION_TYPES: dict[str, tuple[str, ...]] = {
    "hotel": ("hotel",),
    "hostel": ("hostel",),
    "apartment": ("apartment", "flat"),
    "airbnb": ("airbnb", "air bnb"),
    "resort": ("resort",),
    "villa": ("villa",),
    "cottage": ("cottage", "cabin"),
    "vacation rental": ("vacation rental", "holiday rental"),
}

ACTIVITY_TYPES: dict[str, tuple[str, ...]] = {
    "sightseeing": ("sightseeing", "sights", "landmarks", "tours?"),
    "museums": ("museums?", "galler(?:y|ies)"),
    "beaches": ("beach(?:es)?",),
    "hiking": ("hik(?:e|es|ing)", "trek(?:king)?"),
    "shopping": ("shop(?:s|ping)?", "markets?"),
    "food": ("food", "foodie", "eat(?:ing)?", "restaurants?", "cuisine", "dining"),
    "nightlife": ("nightlife", "bars", "clubs", "clubbing"),
    "cultural": ("cultur(?:e|al)",),
    "historical": ("histor(?:y|ic|ical)",),
    "adventure": ("adventur(?:e|es|ous)",),
    "relaxation": ("relaxation", "spas?", "wellness"),
    "nature": ("nature", "outdoors", "parks?", "wildlife"),
    "sports": ("sports?",),
}

# Checked in this order, first hit wins.
PACE_KEYWORDS: tuple[tuple[Pace, tuple[str, ...]], ...] = (
    (Pace.BUSY, ("busy", "packed", "full", "fast", "intense", "lots of activities")),
    (Pace.RELAXED, ("relaxed", "relaxing", "slow", "chill", "laid[- ]back", "easy", "free time")),
    (Pace.MODERATE, ("moderate", "balanced", "medium", "mix", "normal", "in between")),
)

_ACCOMMODATION_PATTERNS = {
    tag: re.compile(r"\b(?:" + "|".join(re.escape(a) for a in aliases) + r")s?\b", re.IGNORECASE)
    for tag, aliases in ACCOMMODATION_TYPES.items()
}
_ACTIVITY_PATTERNS = {
    tag: re.compile(r"\b(?:" + "|".join(keywords) + r")\b", re.IGNORECASE)
    for tag, keywords in ACTIVITY_TYPES.items()
}
_PACE_PATTERNS = [
    (pace, re.compile(r"\b(?:" + "|".join(keywords) + r")\b", re.IGNORECASE))
    for pace, keywords in PACE_KEYWORDS
]
_ACTIVITY_CATCH_ALL = re.compile(
    r"\b(?:everything|anything|all of (?:them|the above|it)|a bit of everything)\b",
    re.IGNORECASE,
)

# ============ Destination ============

# Words that start many sentences but are never a place.
_NON_PLACE_WORDS = frozenset(
    {
        "I", "I'm", "I'd", "I'll", "Im", "We", "We're", "We'd", "My", "Our", "Me", "Us",
        "You", "It", "It's", "This", "That", "The", "A", "An", "Yes", "Yeah", "Yep", "No",
        "Nope", "Not", "Maybe", "Perhaps", "Hmm", "Um", "Uh", "Hi", "Hello", "Hey",
        "Please", "Thanks", "Thank", "Ok", "Okay", "Sure", "Well", "So", "Somewhere",
        "Anywhere", "Nowhere", "Dunno", "Let", "Let's", "Can", "Could", "Would", "What",
        "Where", "When", "How", "Why", "Which", "Just", "Probably", "Either",
        "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
        "January", "February", "March", "April", "May", "June", "July", "August",
        "September", "October", "November", "December",
    }
)
_PLACE_WORD = r"[A-ZÀ-Þ][\w'.\-]*"
_PLACE = (
    rf"{_PLACE_WORD}"
    rf"(?:[ \t]+(?:(?:of|de|del|la|le|da|do|upon|am|on)[ \t]+)?{_PLACE_WORD})*"
    rf"(?:,[ \t]*{_PLACE_WORD}(?:[ \t]+{_PLACE_WORD})*)?"
)
_DESTINATION_CUE = re.compile(
    r"\b(?:going to|go to|travel(?:l?ing)? to|heading to|fly(?:ing)? to|visit(?:ing)?|to|in)"
    rf"[ \t]+(?P<place>{_PLACE})"
)
_LEADING_PLACE = re.compile(rf"^\s*(?P<place>{_PLACE})")


def _clean_place(raw: str) -> str | None:
    place = raw.strip().rstrip(".,!?;:'\"").strip()
    if not place or place.split()[0].rstrip(",") in _NON_PLACE_WORDS:
        return None
    return place


def extract_destination(utterance: str) -> str | Any:
    for match in _DESTINATION_CUE.finditer(utterance):
        place = _clean_place(match.group("place"))
        if place:
            return place
    match = _LEADING_PLACE.match(utterance)
    if match:
        place = _clean_place(match.group("place"))
        if place:
            return place
    return NOT_CAPTURED


# ============ Dates ============

_DATE_RANGE_CUE = re.compile(
    r"\b(?:from|between)\s+(?P<start>.+?)\s+(?:to|and|until|till|through|thru)\s+(?P<end>.+)$",
    re.IGNORECASE,
)
_ORDINAL = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE)
_FULL_DATE_FORMATS = (
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
)
_PARTIAL_DATE_FORMATS = ("%B %d", "%b %d", "%d %B", "%d %b")
_MAX_DATE_TOKENS = 4


def _normalize_date_text(text: str) -> str:
    text = _ORDINAL.sub(r"\1", text)
    text = text.replace(",", " ")
    text = re.sub(r"\b(?:the|of)\b", " ", text, flags=re.IGNORECASE)
    text = re.sub(r"\bsept\b", "sep", text, flags=re.IGNORECASE)
    return " ".join(text.split()).strip(" .!?;")


def _parse_date(text: str) -> date_type | tuple[int, int] | None:
    """Parse a full date, or a ``(month, day)`` pair when no year is given."""
    cleaned = _normalize_date_text(text)
    if not cleaned:
        return None
    for fmt in _FULL_DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    for fmt in _PARTIAL_DATE_FORMATS:
        try:
            # Leap year so that Feb 29 parses
            parsed = datetime.strptime(f"{cleaned} 2000", f"{fmt} %Y")
        except ValueError:
            continue
        return (parsed.month, parsed.day)
    return None


def _parse_leading_date(text: str) -> date_type | tuple[int, int] | None:
    """Parse the longest run of leading tokens that forms a date."""
    tokens = text.split()
    for size in range(min(_MAX_DATE_TOKENS, len(tokens)), 0, -1):
        parsed = _parse_date(" ".join(tokens[:size]))
        if parsed is not None:
            return parsed
    return None


def _resolve_year(
    partial: tuple[int, int], anchor: date_type | None, reference: date_type
) -> date_type | None:
    month, day = partial
    try:
        if anchor is not None:
            return date_type(anchor.year, month, day)
        candidate = date_type(reference.year, month, day)
        if candidate < reference:
            candidate = date_type(reference.year + 1, month, day)
        return candidate
    except ValueError:
        return None


def extract_dates(utterance: str, reference: date_type | None = None) -> DateRange | Any:
    """Extract ``from X to Y`` / ``between X and Y``.

    A date without a year takes the year of the other date, or its next
    occurrence on or after ``reference`` (today by default). A year-less
    end date in an earlier month than the start rolls into the next year;
    any other end date before the start is not captured.
    """
    match = _DATE_RANGE_CUE.search(utterance)
    if not match:
        return NOT_CAPTURED
    start = _parse_date(match.group("start"))
    end = _parse_leading_date(match.group("end"))
    if start is None or end is None:
        return NOT_CAPTURED

    reference = reference or date_type.today()
    if isinstance(start, tuple):
        start = _resolve_year(start, end if isinstance(end, date_type) else None, reference)
        if start is None:
            return NOT_CAPTURED
    if isinstance(end, tuple):
        resolved = _resolve_year(end, start, reference)
        if resolved is not None and resolved < start and end[0] < start.month:
            resolved = _resolve_year(end, date_type(start.year + 1, 1, 1), reference)
        end = resolved
        if end is None:
            return NOT_CAPTURED

    if end < start:
        return NOT_CAPTURED
    return DateRange(start=start, end=end)


# ============ Budget ============

_AMOUNT = r"(?P<amount>\d{1,3}(?:,\d{3})+|\d+)(?:\.(?P<cents>\d{1,2}))?(?:\s?(?P<k>[kK])\b)?"
_CURRENCY_AMOUNT = re.compile(r"\$\s?" + _AMOUNT)
_PLAIN_AMOUNT = re.compile(r"(?<![\w.,/\-])" + _AMOUNT)


def extract_budget(utterance: str) -> Decimal | Any:
    """First currency-like amount, preferring one marked with ``$``."""
    match = _CURRENCY_AMOUNT.search(utterance) or _PLAIN_AMOUNT.search(utterance)
    if not match:
        return NOT_CAPTURED
    try:
        value = Decimal(match.group("amount").replace(",", ""))
        if match.group("cents"):
            value += Decimal(f"0.{match.group('cents')}")
    except InvalidOperation:
        return NOT_CAPTURED
    if match.group("k"):
        value *= 1000
    if value <= 0:
        return NOT_CAPTURED
    return value


# ============ Party Size ============

_NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}
_PARTY_NOUNS = r"(?:people|persons?|travell?ers|adults|guests|of us|pax)"
_PARTY_COUNT = re.compile(
    r"(?<![\w\-])(?P<count>\d+|" + "|".join(_NUMBER_WORDS) + r")\s+" + _PARTY_NOUNS + r"\b",
    re.IGNORECASE,
)
_BARE_COUNT = re.compile(r"^\s*(?P<count>\d+)\s*[.!]?\s*$")
_SOLO = re.compile(r"\b(?:just me|only me|solo|by myself|alone|on my own)\b", re.IGNORECASE)


def extract_party_size(utterance: str) -> int | Any:
    match = _PARTY_COUNT.search(utterance) or _BARE_COUNT.match(utterance)
    if match:
        raw = match.group("count").lower()
        count = _NUMBER_WORDS.get(raw) or int(raw)
        return count if count >= 1 else NOT_CAPTURED
    if _SOLO.search(utterance):
        return 1
    return NOT_CAPTURED


# ============ Preferences ============


def extract_accommodation(utterance: str) -> list[str] | Any:
    found = [tag for tag, pattern in _ACCOMMODATION_PATTERNS.items() if pattern.search(utterance)]
    return found or NOT_CAPTURED


def extract_activities(utterance: str) -> list[str] | Any:
    found = [tag for tag, pattern in _ACTIVITY_PATTERNS.items() if pattern.search(utterance)]
    if found:
        return found
    if _ACTIVITY_CATCH_ALL.search(utterance):
        return list(ACTIVITY_TYPES)
    return NOT_CAPTURED


def extract_pace(utterance: str) -> Pace | Any:
    for pace, pattern in _PACE_PATTERNS:
        if pattern.search(utterance):
            return pace
    return NOT_CAPTURED


# ============ Confirmation ============

_AFFIRMATIVE = re.compile(
    r"^\s*(?:yes|yeah|yep|yup|ya|sure|correct|confirm(?:ed)?|looks good|sounds good|"
    r"that'?s (?:right|correct)|that is (?:right|correct)|right|ok(?:ay)?|absolutely|"
    r"definitely|go ahead|let'?s do it|perfect|great|y)\b",
    re.IGNORECASE,
)


def extract_confirmation(utterance: str) -> bool | Any:
    return True if _AFFIRMATIVE.match(utterance) else NOT_CAPTURED


_EXTRACTORS = {
    Slot.DESTINATION: extract_destination,
    Slot.DATES: extract_dates,
    Slot.BUDGET: extract_budget,
    Slot.PARTY_SIZE: extract_party_size,
    Slot.ACCOMMODATION: extract_accommodation,
    Slot.ACTIVITIES: extract_activities,
    Slot.PACE: extract_pace,
    Slot.CONFIRMATION: extract_confirmation,
}


def extract_slot_value(slot: Slot, utterance: str) -> Any:
    """Extract the value of ``slot`` from one utterance.

    Returns the typed value (str, DateRange, Decimal, int, list[str],
    Pace or True) or ``NOT_CAPTURED``.
    """
    if not utterance or not utterance.strip():
        return NOT_CAPTURED
    return _EXTRACTORS[slot](utterance)


def is_captured(value: Any) -> bool:
    return value is not NOT_CAPTURED


_BUDGET_CUE = re.compile(r"\b(?:budget|spend|per person)\b", re.IGNORECASE)


def extract_amendments(utterance: str) -> dict[Slot, Any]:
    """Extract every slot a correction message mentions.

    Used once all slots are filled, so only unambiguous signals count: a
    destination needs a travel cue, a plain number is a budget only next
    to a budget word, and a party size needs a noun.
    """
    found: dict[Slot, Any] = {}
    dates = extract_dates(utterance)
    if is_captured(dates):
        found[Slot.DATES] = dates

    party = _PARTY_COUNT.search(utterance)
    if party:
        raw = party.group("count").lower()
        count = _NUMBER_WORDS.get(raw) or int(raw)
        if count >= 1:
            found[Slot.PARTY_SIZE] = count
    elif _SOLO.search(utterance):
        found[Slot.PARTY_SIZE] = 1

    cue = _BUDGET_CUE.search(utterance)
    if _CURRENCY_AMOUNT.search(utterance):
        budget = extract_budget(utterance)
    elif cue:
        budget = extract_budget(utterance[cue.end():])
    else:
        budget = NOT_CAPTURED
    if is_captured(budget):
        found[Slot.BUDGET] = budget

    for slot, extractor in (
        (Slot.ACCOMMODATION, extract_accommodation),
        (Slot.ACTIVITIES, extract_activities),
        (Slot.PACE, extract_pace),
    ):
        value = extractor(utterance)
        if is_captured(value):
            found[slot] = value

    for match in _DESTINATION_CUE.finditer(utterance):
        place = _clean_place(match.group("place"))
        if place:
            found[Slot.DESTINATION] = place
            break
    return found
