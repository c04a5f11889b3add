# classifier.py
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from fragment import Fragment

LOGGER = logging.getLogger(__name__)

# Numbers are capped at 9 digits; longer runs are not page numbers or positions.
PAGE_REF_RE = re.compile(r"page[-_]?([0-9]{1,9})", re.IGNORECASE)
DIGITS_RE = re.compile(r"[0-9]{1,9}")
# Older publisher sheets put "GANPAGE/" in front of the header.
FRAGMENT_RE = re.compile(r"(?:GANPAGE/)?ID:([^;]+);CHUNK:([0-9]{1,9})/([0-9]{1,9});(.*)", re.DOTALL)

# Backend records name the text field gaText; plain "text" is accepted too.
RECORD_TEXT_KEYS = ("text", "gaText")


@dataclass(frozen=True)
class StructuredPageRecord:
    page_number: int
    text: str
    audio_url: Optional[str] = None
    qr_code_url: Optional[str] = None


@dataclass(frozen=True)
class PageReference:
    page_number: int


@dataclass(frozen=True)
class PlainText:
    text: str


PayloadVariant = Union[StructuredPageRecord, PageReference, Fragment, PlainText]


def _positive_int(v: Any) -> Optional[int]:
    # bool is an int subclass; true/false are never page numbers
    if isinstance(v, bool) or not isinstance(v, int):
        return None
    return v if v > 0 else None


def match_record(raw: str) -> Optional[StructuredPageRecord]:
    try:
        obj = json.loads(raw)
    except (ValueError, RecursionError):  # RecursionError: deeply nested arrays
        return None
    if not isinstance(obj, dict):
        return None
    page_number = _positive_int(obj.get("pageNumber"))
    if page_number is None:
        return None
    text = next((obj[k] for k in RECORD_TEXT_KEYS if isinstance(obj.get(k), str) and obj[k]), None)
    if text is None:
        return None
    audio = obj.get("audioUrl")
    qr = obj.get("qrCodeUrl")
    return StructuredPageRecord(
        page_number=page_number,
        text=text,
        audio_url=audio if isinstance(audio, str) else None,
        qr_code_url=qr if isinstance(qr, str) else None,
    )


def match_page_reference(raw: str) -> Optional[PageReference]:
    s = raw.strip()
    m = PAGE_REF_RE.fullmatch(s)
    digits = m.group(1) if m else (s if DIGITS_RE.fullmatch(s) else None)
    if digits is None:
        return None
    n = int(digits)
    return PageReference(page_number=n) if n > 0 else None


def match_fragment(raw: str) -> Optional[Fragment]:
    m = FRAGMENT_RE.fullmatch(raw)
    if not m:
        return None
    page_id, index, total, payload = m.groups()
    index, total = int(index), int(total)
    if not (1 <= index <= total) or not payload:
        return None
    try:
        data = payload.encode("utf-8")
    except UnicodeEncodeError:  # lone surrogates from a bad decode
        return None
    return Fragment(page_id=page_id, index=index, total=total, payload=data)


# First match wins.
MATCHERS: List[Callable[[str], Optional[PayloadVariant]]] = [
    match_record,
    match_page_reference,
    match_fragment,
]


def classify(raw: str) -> PayloadVariant:
    """Decide what a decoded barcode string carries. Never raises."""
    for matcher in MATCHERS:
        out = matcher(raw)
        if out is not None:
            LOGGER.debug("classified scan as %s", type(out).__name__)
            return out
    return PlainText(text=raw)
