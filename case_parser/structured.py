"""Regex mining of investigatively relevant facts from extracted text.

Every extractor's text goes through :func:`extract_structured_data`. The
function is pure: no I/O, no engine calls, and each fact family is mined
independently of the others.
"""

import re
from datetime import datetime
from typing import Optional

from case_parser.models import (
    ExtractedDate,
    ExtractedEntity,
    ExtractedLocation,
    ExtractedStructuredData,
)

MAX_ENTITIES = 50
MAX_DATES = 50
MAX_PHONE_NUMBERS = 30
MAX_ENTITY_CONTEXTS = 3

DATE_CONTEXT_CHARS = 50
NAME_CONTEXT_CHARS = 30

PHONE_PATTERNS = [
    re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b"),  # 555-123-4567
    re.compile(r"\(\d{3}\)\s?\d{3}[-.\s]?\d{4}"),  # (555) 123-4567
    re.compile(r"\b\d{10}\b"),  # 5551234567
    re.compile(r"\+1[-.\s]?\d{3}[-.\s]?\d{3}[-.\s]?\d{4}"),  # +1-555-123-4567
]

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

_MONTHS = "January|February|March|April|May|June|July|August|September|October|November|December"
_MONTH_ABBREVIATIONS = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"

DATE_PATTERNS = [
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b\d{1,2}-\d{1,2}-\d{2,4}\b"),
    re.compile(rf"\b(?:{_MONTHS})\s+\d{{1,2}},?\s+\d{{4}}\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}\s+(?:{_MONTHS})\s+\d{{4}}\b", re.IGNORECASE),
    re.compile(rf"\b(?:{_MONTH_ABBREVIATIONS})\.?\s+\d{{1,2}},?\s+\d{{4}}\b", re.IGNORECASE),
]

# strptime formats tried, in order, after commas/periods are stripped
_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%m-%d-%y",
    "%B %d %Y",
    "%d %B %Y",
    "%b %d %Y",
)

NAME_PATTERN = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,2}\b")
NAME_EXCLUDED_PREFIX = re.compile(r"^(?:The |A |An |In |On |At |By |For |With |From )")

ADDRESS_PATTERN = re.compile(
    r"\b\d+\s+[A-Za-z]+(?:\s+[A-Za-z]+)*\s+"
    r"(?:Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Lane|Ln|Boulevard|Blvd|Way|Court|Ct|Place|Pl)\b\.?"
    r"(?:\s*,?\s*(?:Apt|Suite|Unit|#)\.?\s*\d+)?",
    re.IGNORECASE,
)

VEHICLE_MAKES = (
    "Ford", "Chevrolet", "Chevy", "Toyota", "Honda", "Nissan", "BMW", "Mercedes", "Dodge",
    "Jeep", "GMC", "Volkswagen", "VW", "Hyundai", "Kia", "Subaru", "Mazda", "Lexus",
    "Acura", "Infiniti", "Cadillac", "Buick", "Lincoln", "Chrysler",
)
VEHICLE_PATTERN = re.compile(
    rf"\b(?:\d{{4}}\s+)?(?:{'|'.join(VEHICLE_MAKES)})\s+[A-Za-z0-9]+\b",
    re.IGNORECASE,
)

_WHITESPACE = re.compile(r"\s+")


def _context(text: str, start: int, end: int, radius: int) -> str:
    window = text[max(0, start - radius):min(len(text), end + radius)]
    return _WHITESPACE.sub(" ", window).strip()


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def normalize_date(value: str) -> Optional[str]:
    """Return ``YYYY-MM-DD`` for a matched date string, or None if it does not parse."""
    cleaned = _WHITESPACE.sub(" ", value.replace(",", " ").replace(".", " ")).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def extract_phone_numbers(text: str) -> list[str]:
    found: list[str] = []
    for pattern in PHONE_PATTERNS:
        found.extend(pattern.findall(text))
    return _unique(found)


def extract_emails(text: str) -> list[str]:
    return _unique(EMAIL_PATTERN.findall(text))


def extract_dates(text: str) -> list[ExtractedDate]:
    dates = []
    for pattern in DATE_PATTERNS:
        for match in pattern.finditer(text):
            dates.append(
                ExtractedDate(
                    original=match.group(0),
                    context=_context(text, match.start(), match.end(), DATE_CONTEXT_CHARS),
                    normalized=normalize_date(match.group(0)),
                    line_number=text.count("\n", 0, match.start()) + 1,
                )
            )
    return dates


def extract_person_names(text: str) -> list[ExtractedEntity]:
    """Capitalized 2-3 word sequences, counted per exact spelling."""
    names: dict[str, ExtractedEntity] = {}
    for match in NAME_PATTERN.finditer(text):
        name = match.group(0)
        if NAME_EXCLUDED_PREFIX.match(name):
            continue
        entity = names.setdefault(name, ExtractedEntity(name=name, type="person", mentions=0))
        entity.mentions += 1
        if len(entity.contexts) < MAX_ENTITY_CONTEXTS:
            entity.contexts.append(_context(text, match.start(), match.end(), NAME_CONTEXT_CHARS))
    return list(names.values())


def extract_addresses(text: str) -> tuple[list[str], list[ExtractedLocation]]:
    matches = [match.group(0) for match in ADDRESS_PATTERN.finditer(text)]
    locations = [ExtractedLocation(name=address, context=address, type="address") for address in matches]
    return _unique(matches), locations


def extract_vehicles(text: str) -> list[ExtractedEntity]:
    return [
        ExtractedEntity(name=match.group(0), type="vehicle", mentions=1, contexts=[match.group(0)])
        for match in VEHICLE_PATTERN.finditer(text)
    ]


def merge_entities(entities: list[ExtractedEntity]) -> list[ExtractedEntity]:
    """Merge by case-insensitive name, most mentioned first."""
    merged: dict[str, ExtractedEntity] = {}
    for entity in entities:
        key = entity.name.lower()
        existing = merged.get(key)
        if existing is None:
            merged[key] = ExtractedEntity(
                name=entity.name,
                type=entity.type,
                mentions=entity.mentions,
                contexts=entity.contexts[:MAX_ENTITY_CONTEXTS],
            )
            continue
        existing.mentions += entity.mentions
        room = MAX_ENTITY_CONTEXTS - len(existing.contexts)
        if room > 0:
            existing.contexts.extend(entity.contexts[:room])
    return sorted(merged.values(), key=lambda e: e.mentions, reverse=True)


def extract_structured_data(text: str) -> ExtractedStructuredData:
    """Mine phones, emails, dates, names, addresses and vehicles from text."""
    result = ExtractedStructuredData()
    if not text:
        return result

    result.phone_numbers = extract_phone_numbers(text)[:MAX_PHONE_NUMBERS]
    result.emails = extract_emails(text)
    result.dates = extract_dates(text)[:MAX_DATES]
    result.addresses, result.locations = extract_addresses(text)

    entities = extract_person_names(text) + extract_vehicles(text)
    result.entities = merge_entities(entities)[:MAX_ENTITIES]
    return result
