#!/usr/bin/env python3
# gen_fragments.py - publisher tool: turn page text into barcode payload files
# Each output .txt holds exactly the string one barcode must encode; rendering
# the images is left to the barcode tool of choice.
import json
import os
import sys
from datetime import datetime, timezone
from typing import List, Tuple

from fragment import ContentTooLarge, encode
from profiles import ScanProfile, add_profile_args, load_profile

def plan_payloads(text: str, page_id: str, byte_budget: int,
                  always_fragment: bool = False) -> List[Tuple[str, str]]:
    """
    Return (filename, payload) pairs. Text that fits one barcode goes out
    unframed unless always_fragment is set.
    """
    if not always_fragment and len(text.encode("utf-8")) <= byte_budget:
        return [(f"{page_id}.txt", text)]
    return [(f"{page_id}_chunk_{f.index}.txt", f.wire()) for f in encode(text, page_id, byte_budget)]

def build_summary(text: str, page_id: str, payloads: List[Tuple[str, str]], profile: ScanProfile) -> dict:
    chunked = not (len(payloads) == 1 and payloads[0][1] == text)
    return {
        "pageId": page_id,
        "textLength": len(text),
        "textBytes": len(text.encode("utf-8")),
        "chunked": chunked,
        "chunkCount": len(payloads),
        "byteBudget": profile.byte_budget,
        "maxPayloadBytes": max(len(p.encode("utf-8")) for _, p in payloads),
        "files": [name for name, _ in payloads],
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "options": {"errorCorrectionLevel": profile.error_correction},
    }

def write_outputs(outdir: str, page_id: str, payloads: List[Tuple[str, str]], summary: dict) -> str:
    os.makedirs(outdir, exist_ok=True)
    for name, payload in payloads:
        # newline="" keeps payload bytes exactly as framed
        with open(os.path.join(outdir, name), "w", encoding="utf-8", newline="") as f:
            f.write(payload)
    summary_path = os.path.join(outdir, f"{page_id}_summary.json")
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
    return summary_path

def main():
    import argparse
    ap = argparse.ArgumentParser(description="Generate barcode payloads for a page of text")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--text", type=str, help="page text")
    src.add_argument("--input", type=str, help="UTF-8 text file")
    ap.add_argument("--page_id", type=str, required=True)
    ap.add_argument("--outdir", type=str, default="qr-payloads")
    ap.add_argument("--always_fragment", action="store_true",
                    help="frame the text even when it fits a single barcode")
    add_profile_args(ap)
    args = ap.parse_args()

    if ";" in args.page_id:
        print("Error: --page_id must not contain ';'"); sys.exit(1)

    if args.input:
        if not os.path.exists(args.input):
            print(f"Error: input file not found: {args.input}"); sys.exit(1)
        with open(args.input, "r", encoding="utf-8") as f:
            text = f.read()
    else:
        text = args.text
    text = text.strip()
    if not text:
        print("Error: text content is empty"); sys.exit(1)

    try:
        profile = load_profile(args)
    except (OSError, ValueError) as e:
        print(f"Error: bad profile: {e}"); sys.exit(1)

    print(f"[GEN] page {args.page_id}: {len(text)} chars, {len(text.encode('utf-8'))} bytes, "
          f"budget={profile.byte_budget}")
    try:
        payloads = plan_payloads(text, args.page_id, profile.byte_budget, args.always_fragment)
    except ContentTooLarge as e:
        print(f"Error: {e}. Try a larger --byte_budget."); sys.exit(1)

    summary = build_summary(text, args.page_id, payloads, profile)
    summary_path = write_outputs(args.outdir, args.page_id, payloads, summary)
    for i, (name, payload) in enumerate(payloads, 1):
        print(f"[GEN] {i}/{len(payloads)} {name} bytes={len(payload.encode('utf-8'))}")
    print(f"[GEN] summary -> {summary_path} (error correction {profile.error_correction})")

if __name__ == "__main__":
    main()
