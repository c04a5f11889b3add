#!/usr/bin/env python3
# plot_budget.py - how many barcodes a page needs at each byte budget
import os
import sys

import pandas as pd

from fragment import ContentTooLarge, encode

DEFAULT_BUDGETS = [200, 400, 800, 1200, 1600, 2000, 2400, 2900]

def budget_sweep(text: str, page_id: str, budgets) -> pd.DataFrame:
    rows = []
    for b in budgets:
        try:
            frags = encode(text, page_id, b)
        except ContentTooLarge:
            # too small to carry even one codepoint
            rows.append({"budget": b, "fragments": None, "max_wire": None, "fill": None})
            continue
        sizes = [f.wire_size() for f in frags]
        rows.append({
            "budget": b,
            "fragments": len(frags),
            "max_wire": max(sizes),
            "fill": sum(sizes) / (len(sizes) * b),
        })
    df = pd.DataFrame(rows, columns=["budget", "fragments", "max_wire", "fill"])
    df["budget"] = df["budget"].astype(int)
    return df.sort_values("budget").reset_index(drop=True)

def write_summary_md(df: pd.DataFrame, page_id: str, out_md: str) -> None:
    lines = [f"# Byte budget sweep: {page_id}\n",
             "| budget | fragments | max wire bytes | fill |",
             "|--------|-----------|----------------|------|"]
    for _, r in df.iterrows():
        if pd.isna(r["fragments"]):
            lines.append(f"| {int(r['budget'])} | too small | - | - |")
        else:
            lines.append("| {b} | {n} | {m} | {fill:.1f}% |".format(
                b=int(r["budget"]), n=int(r["fragments"]), m=int(r["max_wire"]), fill=r["fill"] * 100.0))
    with open(out_md, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
    print(f"[OK] wrote {out_md}")

def plot_fragments(df: pd.DataFrame, page_id: str, out_png: str) -> None:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    ok = df.dropna(subset=["fragments"])
    plt.figure(figsize=(7.5, 5.0))
    plt.plot(ok["budget"], ok["fragments"], marker="o", label=page_id)
    plt.xlabel("Byte budget per barcode")
    plt.ylabel("Barcodes needed")
    plt.title("Fragments vs. byte budget")
    plt.legend()
    plt.tight_layout(); plt.savefig(out_png, dpi=160)
    plt.close()
    print(f"[OK] wrote {out_png}")

if __name__ == "__main__":
    import argparse
    ap = argparse.ArgumentParser(description="Sweep byte budgets over a page of text")
    ap.add_argument("--input", required=True, help="UTF-8 text file")
    ap.add_argument("--page_id", default="page1")
    ap.add_argument("--budgets", type=int, nargs="+", default=DEFAULT_BUDGETS)
    ap.add_argument("--outdir", default="reports/budget")
    args = ap.parse_args()

    with open(args.input, "r", encoding="utf-8") as f:
        text = f.read().strip()
    if not text:
        raise SystemExit("Input text is empty.")
    os.makedirs(args.outdir, exist_ok=True)
    df = budget_sweep(text, args.page_id, args.budgets)
    df.to_csv(os.path.join(args.outdir, f"{args.page_id}_budgets.csv"), index=False)
    write_summary_md(df, args.page_id, os.path.join(args.outdir, f"{args.page_id}_budgets.md"))
    plot_fragments(df, args.page_id, os.path.join(args.outdir, f"{args.page_id}_budgets.png"))
    sys.exit(0)
