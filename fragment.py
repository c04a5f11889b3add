# fragment.py
import logging
from dataclasses import dataclass
from typing import List

LOGGER = logging.getLogger(__name__)

DEFAULT_BYTE_BUDGET = 2400  # bytes per barcode payload (tunable; profile-specific)

HEADER_FMT = "ID:{page_id};CHUNK:{index}/{total};"


class ContentTooLarge(ValueError):
    """A single codepoint plus its header does not fit the byte budget."""


@dataclass(frozen=True)
class Fragment:
    page_id: str
    index: int     # 1-based
    total: int
    payload: bytes  # utf-8 slice, always ends on a codepoint boundary

    def __post_init__(self):
        if not self.page_id or ";" in self.page_id:
            raise ValueError(f"invalid page id: {self.page_id!r}")
        if not 1 <= self.index <= self.total:
            raise ValueError(f"index {self.index} outside 1..{self.total}")
        if not self.payload:
            raise ValueError("fragment payload must not be empty")

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8")

    def header(self) -> str:
        return make_header(self.page_id, self.index, self.total)

    def wire(self) -> str:
        """Text a barcode carries for this fragment."""
        return self.header() + self.text

    def wire_size(self) -> int:
        return len(self.header().encode("utf-8")) + len(self.payload)


def make_header(page_id: str, index: int, total: int) -> str:
    return HEADER_FMT.format(page_id=page_id, index=index, total=total)


def header_size(page_id: str, index: int, total: int) -> int:
    return len(make_header(page_id, index, total).encode("utf-8"))


def _is_continuation(b: int) -> bool:
    return b & 0xC0 == 0x80


def _codepoint_cut(data: bytes, start: int, limit: int) -> int:
    """Largest end <= start+limit that does not split a codepoint."""
    end = start + limit
    if end >= len(data):
        return len(data)
    while end > start and _is_continuation(data[end]):
        end -= 1
    return end


def _pack(data: bytes, page_id: str, total: int, byte_budget: int) -> List[bytes]:
    segs = []
    pos = 0
    index = 1
    while pos < len(data):
        room = byte_budget - header_size(page_id, index, total)
        end = _codepoint_cut(data, pos, max(room, 0))
        if end == pos:
            raise ContentTooLarge(
                f"cannot fit any text in fragment {index}: {room} bytes left after header "
                f"with budget {byte_budget}")
        segs.append(data[pos:end])
        pos = end
        index += 1
    return segs


def encode(text: str, page_id: str, byte_budget: int = DEFAULT_BYTE_BUDGET) -> List[Fragment]:
    """
    Split text into fragments whose wire text fits byte_budget.

    Packing runs against a provisional total. Rewriting the headers with the
    real count can only overflow when the count gains a digit, in which case
    the text is packed again with the wider total until the width is stable.
    """
    if byte_budget <= 0:
        raise ValueError("byte_budget must be positive")
    if not page_id or ";" in page_id:
        raise ValueError(f"invalid page id: {page_id!r}")
    if not text:
        raise ValueError("text must not be empty")

    data = text.encode("utf-8")
    room = byte_budget - header_size(page_id, 1, 1)
    if room <= 0:
        raise ContentTooLarge(f"header for page {page_id!r} alone exceeds budget {byte_budget}")
    provisional = -(-len(data) // room)

    while True:
        segs = _pack(data, page_id, provisional, byte_budget)
        actual = len(segs)
        if len(str(actual)) <= len(str(provisional)):
            break
        LOGGER.debug("repacking page %s: total %s widened to %s", page_id, provisional, actual)
        provisional = actual

    LOGGER.debug("page %s: %d bytes -> %d fragments (estimated %d)",
                 page_id, len(data), actual, provisional)
    return [Fragment(page_id=page_id, index=i + 1, total=actual, payload=seg)
            for i, seg in enumerate(segs)]


def join_payloads(fragments: List[Fragment]) -> str:
    ordered = sorted(fragments, key=lambda f: f.index)
    return b"".join(f.payload for f in ordered).decode("utf-8")
