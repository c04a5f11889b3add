#!/usr/bin/env python3
# scan_recv.py - Scan-side receiver:
# - classifies decoded barcode strings (record / page ref / fragment / plain text)
# - reassembles fragmented pages in any order, tolerating re-scans
# - warns once per page when a page stays incomplete past the profile timeout
# - --once flag to exit after the first finished page
# - Clean Ctrl-C handling

import json
import signal
import sys
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

from classifier import PageReference, PlainText, StructuredPageRecord, classify
from fragment import Fragment
from profiles import ScanProfile, add_profile_args, load_profile
from reassembler import AnomalyIgnored, Complete, Incomplete, Reassembler
from telemetry import EventLog, ScanTelemetry


@dataclass
class ScanOutcome:
    kind: str  # page_reference | record | plain_text | progress | complete | anomaly
    text: Optional[str] = None
    page_id: Optional[str] = None
    page_number: Optional[int] = None
    count: int = 0
    total: int = 0
    reason: Optional[str] = None

    @property
    def finished(self) -> bool:
        """True when the scan loop can stop: the page's content (or a pointer to it) is in hand."""
        return self.kind in ("page_reference", "record", "plain_text", "complete")


class ScanSession:
    def __init__(self, profile: ScanProfile, clock: Callable[[], float] = time.monotonic,
                 events: Optional[EventLog] = None):
        self.profile = profile
        self.clock = clock
        self.rx = Reassembler(clock=clock)
        self.telemetry = ScanTelemetry()
        self.events = events or EventLog(None)
        self.current_page_id: Optional[str] = None
        self._warned: Set[str] = set()

    def handle(self, raw: str) -> ScanOutcome:
        self.telemetry.scans += 1
        v = classify(raw)

        if isinstance(v, StructuredPageRecord):
            self.events.emit("scan_record", page_number=v.page_number)
            return ScanOutcome("record", text=v.text, page_number=v.page_number)
        if isinstance(v, PageReference):
            self.events.emit("scan_page_ref", page_number=v.page_number)
            return ScanOutcome("page_reference", page_number=v.page_number)
        if isinstance(v, PlainText):
            self.events.emit("scan_plain", chars=len(v.text))
            return ScanOutcome("plain_text", text=v.text)
        return self._handle_fragment(v)

    def _handle_fragment(self, frag: Fragment) -> ScanOutcome:
        self.telemetry.fragments += 1
        self.current_page_id = frag.page_id
        if self.rx.received(frag.page_id).get(frag.index) == frag.payload:
            self.telemetry.duplicates += 1

        res = self.rx.ingest(frag)
        if isinstance(res, Complete):
            self.telemetry.completions += 1
            self._warned.discard(frag.page_id)
            self.events.emit("page_complete", page_id=frag.page_id, total=frag.total,
                             bytes=len(res.text.encode("utf-8")))
            return ScanOutcome("complete", text=res.text, page_id=frag.page_id,
                               count=frag.total, total=frag.total)
        if isinstance(res, AnomalyIgnored):
            self.telemetry.anomalies += 1
            self.events.emit("fragment_anomaly", page_id=frag.page_id, index=frag.index,
                             reason=res.reason)
            return ScanOutcome("anomaly", page_id=frag.page_id, reason=res.reason,
                               count=len(self.rx.received(frag.page_id)),
                               total=self.rx.total_expected(frag.page_id) or frag.total)
        self.events.emit("fragment_progress", page_id=frag.page_id, index=frag.index,
                         count=res.count, total=res.total)
        return ScanOutcome("progress", page_id=frag.page_id, count=res.count, total=res.total)

    def poll_timeouts(self, now: Optional[float] = None) -> List[Incomplete]:
        """Pages incomplete past the profile timeout; each page is reported once."""
        out = []
        for page_id in self.rx.pending_pages():
            if page_id in self._warned:
                continue
            st = self.rx.check_timeout(page_id, now=now, timeout=self.profile.timeout_s)
            if isinstance(st, Incomplete):
                self._warned.add(page_id)
                self.telemetry.timeouts += 1
                self.events.emit("page_incomplete", page_id=page_id, missing=st.missing)
                out.append(st)
        return out

    def reset(self, page_id: Optional[str] = None) -> None:
        targets = [page_id] if page_id else self.rx.pending_pages()
        for p in targets:
            self.rx.reset(p)
            self._warned.discard(p)
        if page_id is None or page_id == self.current_page_id:
            self.current_page_id = None


class ReplayClock:
    """Clock driven by recorded scan timestamps."""
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def iter_scan_files(paths: Iterable[str]) -> Iterator[Tuple[Optional[float], str]]:
    for p in paths:
        with open(p, "r", encoding="utf-8", newline="") as f:
            yield None, f.read()


def iter_scan_jsonl(path: str) -> Iterator[Tuple[Optional[float], str]]:
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                print(f"[SCAN] skipping malformed line: {line[:40]!r}")
                continue
            raw = rec.get("raw") if isinstance(rec, dict) else None
            if not isinstance(raw, str):
                continue
            t = rec.get("t")
            # bool is an int subclass; true/false are not timestamps
            ok = isinstance(t, (int, float)) and not isinstance(t, bool)
            yield (float(t) if ok else None), raw


def main():
    import argparse

    ap = argparse.ArgumentParser(description="Reassemble pages from decoded barcode scans")
    ap.add_argument("scans", nargs="*", help="files, each holding one decoded barcode string")
    ap.add_argument("--jsonl", type=str, default=None,
                    help='scan stream, one {"t": seconds, "raw": "..."} per line')
    ap.add_argument("--once", action="store_true", help="exit after the first finished page")
    ap.add_argument("--log_jsonl", type=str, default=None, help="append events to this JSONL file")
    add_profile_args(ap)
    args = ap.parse_args()

    if bool(args.scans) == bool(args.jsonl):
        print("Error: give scan files OR --jsonl, not both/neither.")
        sys.exit(2)

    # graceful Ctrl-C
    stop = False

    def _sigint(*_):
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _sigint)

    try:
        profile = load_profile(args)
    except (OSError, ValueError) as e:
        print(f"Error: bad profile: {e}")
        sys.exit(2)

    clock = ReplayClock()
    source = iter_scan_jsonl(args.jsonl) if args.jsonl else iter_scan_files(args.scans)
    sess = ScanSession(profile, clock=clock, events=EventLog(args.log_jsonl))
    print(f"[SCAN] ready (budget={profile.byte_budget}, timeout={profile.timeout_s}s)")

    finished = 0
    for t, raw in source:
        if stop:
            break
        # without timestamps, scans are spaced one poll interval apart
        clock.t = t if t is not None else clock.t + profile.poll_ms / 1000.0

        for inc in sess.poll_timeouts():
            print(f"[SCAN] incomplete page {inc.page_id}: missing {inc.missing} fragment(s) "
                  f"{sess.rx.missing_indices(inc.page_id)}. Keep scanning.")

        out = sess.handle(raw)
        if not out.finished:
            if out.kind == "anomaly":
                print(f"[SCAN] page {out.page_id}: ignored conflicting fragment ({out.reason})")
            else:
                print(f"[SCAN] page {out.page_id}: {out.count}/{out.total} fragments")
            continue

        finished += 1
        if out.kind == "page_reference":
            print(f"[SCAN] page reference -> page {out.page_number} (fetch from backend)")
        else:
            label = out.page_id or out.page_number or "plain text"
            print(f"==== PAGE {label} ====")
            print(out.text)
            print("=" * 20)
        if args.once:
            break

    for page_id in sess.rx.pending_pages():
        print(f"[SCAN] page {page_id} unfinished; missing {sess.rx.missing_indices(page_id)}")
    print(f"[SCAN] telemetry {sess.telemetry.to_dict()}")
    print("[SCAN] Stopped cleanly.")
    sys.exit(0 if finished else 1)


if __name__ == "__main__":
    main()
