# profiles.py - load scan/publish profiles; fallback to named defaults
import json
import sys
from dataclasses import dataclass, asdict

from fragment import DEFAULT_BYTE_BUDGET
from reassembler import DEFAULT_TIMEOUT_S

EC_LEVELS = ("L", "M", "Q", "H")

# error_correction is passed through to the barcode renderer, never interpreted here
DEFAULTS = {
    "standard": {"byte_budget": DEFAULT_BYTE_BUDGET, "error_correction": "M", "timeout_s": DEFAULT_TIMEOUT_S, "poll_ms": 1000},
    "robust":   {"byte_budget": 1200, "error_correction": "H", "timeout_s": 15.0, "poll_ms": 1000},
    "compact":  {"byte_budget": 800,  "error_correction": "Q", "timeout_s": 20.0, "poll_ms": 750},
}

@dataclass
class ScanProfile:
    byte_budget: int
    error_correction: str
    timeout_s: float
    poll_ms: int

    def validate(self) -> None:
        if self.byte_budget <= 0:
            raise ValueError("byte_budget must be > 0")
        if self.error_correction not in EC_LEVELS:
            raise ValueError(f"error_correction must be one of {EC_LEVELS}")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if self.poll_ms <= 0:
            raise ValueError("poll_ms must be > 0")

    def to_dict(self) -> dict:
        return asdict(self)

def dict_to_profile(d: dict) -> ScanProfile:
    p = ScanProfile(
        byte_budget=int(d.get("byte_budget", DEFAULT_BYTE_BUDGET)),
        error_correction=str(d.get("error_correction", "M")).upper(),
        timeout_s=float(d.get("timeout_s", DEFAULT_TIMEOUT_S)),
        poll_ms=int(d.get("poll_ms", 1000)),
    )
    p.validate()
    return p

def load_profile(args) -> ScanProfile:
    # explicit JSON wins over a named profile
    if getattr(args, "profile_json", None):
        with open(args.profile_json, "r") as f:
            d = json.load(f)
    else:
        name = (getattr(args, "profile", None) or "standard").lower()
        if name not in DEFAULTS: sys.exit(f"Unknown profile '{name}'")
        d = dict(DEFAULTS[name])
    # allow CLI overrides
    if getattr(args, "byte_budget", None) is not None: d["byte_budget"] = int(args.byte_budget)
    if getattr(args, "error_correction", None) is not None: d["error_correction"] = args.error_correction
    if getattr(args, "timeout_s", None) is not None: d["timeout_s"] = float(args.timeout_s)
    return dict_to_profile(d)

def add_profile_args(ap) -> None:
    ap.add_argument("--profile", choices=sorted(DEFAULTS), default="standard",
                    help="built-in profile unless --profile_json is given")
    ap.add_argument("--profile_json", type=str, default=None, help="explicit profile JSON path")
    ap.add_argument("--byte_budget", type=int, default=None, help="override bytes per barcode")
    ap.add_argument("--error_correction", type=str.upper, choices=EC_LEVELS, default=None,
                    help="barcode error correction level (pass-through)")
    ap.add_argument("--timeout_s", type=float, default=None, help="incomplete-scan warning delay")
