# reassembler.py
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from fragment import Fragment

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class Progress:
    page_id: str
    count: int
    total: int


@dataclass(frozen=True)
class Complete:
    page_id: str
    text: str


@dataclass(frozen=True)
class AnomalyIgnored:
    page_id: str
    index: int
    reason: str  # "total_mismatch" | "payload_conflict"


IngestResult = Union[Progress, Complete, AnomalyIgnored]


@dataclass(frozen=True)
class Ok:
    pass


@dataclass(frozen=True)
class Incomplete:
    page_id: str
    missing: int


TimeoutStatus = Union[Ok, Incomplete]


@dataclass
class ReassemblyBucket:
    page_id: str
    total_expected: int
    first_seen_at: float
    received: Dict[int, bytes] = field(default_factory=dict)
    # fragments whose total disagreed with total_expected; kept for diagnostics only
    mismatched: Dict[int, bytes] = field(default_factory=dict)

    def missing(self) -> List[int]:
        return [i for i in range(1, self.total_expected + 1) if i not in self.received]

    def is_complete(self) -> bool:
        return len(self.received) == self.total_expected


class Reassembler:
    """Order/duplicate tolerant page reassembler. One bucket per page id."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, cap_pages: Optional[int] = None):
        if cap_pages is not None and cap_pages < 1:
            raise ValueError("cap_pages must be >= 1 (or None for no cap)")
        self._buckets: "OrderedDict[str, ReassemblyBucket]" = OrderedDict()
        self._clock = clock
        self._cap = cap_pages

    def ingest(self, frag: Fragment) -> IngestResult:
        b = self._buckets.get(frag.page_id)
        if b is None:
            if self._cap is not None and len(self._buckets) >= self._cap:
                # simple eviction: drop oldest
                old_id, _ = self._buckets.popitem(last=False)
                LOGGER.debug("evicted bucket for page %s", old_id)
            b = ReassemblyBucket(page_id=frag.page_id, total_expected=frag.total,
                                 first_seen_at=self._clock())
            self._buckets[frag.page_id] = b

        # don't adopt a new total; one misread must not wipe progress
        if frag.total != b.total_expected:
            b.mismatched.setdefault(frag.index, frag.payload)
            LOGGER.debug("page %s fragment %d claims total %d, expected %d",
                         frag.page_id, frag.index, frag.total, b.total_expected)
            return AnomalyIgnored(frag.page_id, frag.index, "total_mismatch")

        seen = b.received.get(frag.index)
        if seen is not None:
            if seen == frag.payload:
                return Progress(frag.page_id, len(b.received), b.total_expected)
            LOGGER.debug("page %s fragment %d re-read with different payload; keeping first",
                         frag.page_id, frag.index)
            return AnomalyIgnored(frag.page_id, frag.index, "payload_conflict")

        b.received[frag.index] = frag.payload
        if b.is_complete():
            data = b"".join(b.received[i] for i in range(1, b.total_expected + 1))
            del self._buckets[frag.page_id]
            return Complete(frag.page_id, data.decode("utf-8", errors="replace"))
        return Progress(frag.page_id, len(b.received), b.total_expected)

    def reset(self, page_id: str) -> None:
        self._buckets.pop(page_id, None)

    def check_timeout(self, page_id: str, now: Optional[float] = None,
                      timeout: float = DEFAULT_TIMEOUT_S) -> TimeoutStatus:
        """Incomplete once `timeout` has passed since the page's first fragment. Read-only."""
        b = self._buckets.get(page_id)
        if b is None:
            return Ok()
        now = self._clock() if now is None else now
        if now - b.first_seen_at < timeout:
            return Ok()
        return Incomplete(page_id, b.total_expected - len(b.received))

    # --- diagnostics (copies; callers never touch bucket state) ---
    def pending_pages(self) -> List[str]:
        return list(self._buckets)

    def received(self, page_id: str) -> Dict[int, bytes]:
        b = self._buckets.get(page_id)
        return dict(b.received) if b else {}

    def missing_indices(self, page_id: str) -> List[int]:
        b = self._buckets.get(page_id)
        return b.missing() if b else []

    def total_expected(self, page_id: str) -> Optional[int]:
        b = self._buckets.get(page_id)
        return b.total_expected if b else None
