from plot_budget import budget_sweep, write_summary_md

TEXT = "Akɛ nɛ Ga yɛ kɛ akɛ lɛ shi yɛ kɛ akɛ nɛ wɔ lɛ kɛ shi nɛ. " * 20

def test_sweep_counts_fall_as_budget_grows():
    df = budget_sweep(TEXT, "page1", [2400, 100, 400])
    assert list(df["budget"]) == [100, 400, 2400]
    counts = list(df["fragments"])
    assert counts == sorted(counts, reverse=True)
    assert counts[-1] == 1
    assert (df["max_wire"] <= df["budget"]).all()
    assert ((df["fill"] > 0) & (df["fill"] <= 1)).all()

def test_sweep_marks_budgets_too_small(tmp_path):
    df = budget_sweep(TEXT, "page1", [10, 200])
    assert df["fragments"].isna().tolist() == [True, False]

    out = tmp_path / "budgets.md"
    write_summary_md(df, "page1", str(out))
    body = out.read_text(encoding="utf-8")
    assert "| 10 | too small | - | - |" in body
    assert "| 200 |" in body
