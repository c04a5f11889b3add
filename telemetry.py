# telemetry.py
import json
import os
import time
from dataclasses import dataclass, asdict

@dataclass
class ScanTelemetry:
    scans: int = 0
    fragments: int = 0
    duplicates: int = 0
    anomalies: int = 0
    completions: int = 0
    timeouts: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

class EventLog:
    """
    Append-only JSONL event log. Each record carries "ts" and "event".
    path=None makes every call a no-op.
    """
    def __init__(self, path: str | None):
        self.path = path
        if path:
            d = os.path.dirname(path)
            if d: os.makedirs(d, exist_ok=True)

    def emit(self, event: str, **fields) -> None:
        if not self.path:
            return
        rec = {"ts": time.time(), "event": event, **fields}
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

def read_events(path: str) -> list[dict]:
    out = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                out.append(json.loads(line))
            except json.JSONDecodeError:
                # skip partially written lines
                continue
    return out
