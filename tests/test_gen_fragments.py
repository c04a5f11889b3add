import json

from gen_fragments import build_summary, plan_payloads, write_outputs
from profiles import dict_to_profile
from scan_recv import ReplayClock, ScanSession, iter_scan_files

LONG = "Ga yɛ kɛ akɛ lɛ shi yɛ kɛ akɛ nɛ wɔ lɛ kɛ shi nɛ. " * 12

def test_short_text_goes_out_unframed():
    assert plan_payloads("Akɛ nɛ Ga", "page1", 2400) == [("page1.txt", "Akɛ nɛ Ga")]

def test_always_fragment_frames_short_text():
    assert plan_payloads("hi", "page1", 2400, always_fragment=True) == \
        [("page1_chunk_1.txt", "ID:page1;CHUNK:1/1;hi")]

def test_long_text_is_chunked_within_budget():
    payloads = plan_payloads(LONG, "page1", 120)
    assert len(payloads) > 1
    assert [n for n, _ in payloads] == [f"page1_chunk_{i}.txt" for i in range(1, len(payloads) + 1)]
    assert all(len(p.encode("utf-8")) <= 120 for _, p in payloads)

def test_summary_fields():
    prof = dict_to_profile({"byte_budget": 120, "error_correction": "h"})
    payloads = plan_payloads(LONG, "page1", prof.byte_budget)
    s = build_summary(LONG, "page1", payloads, prof)
    assert s["pageId"] == "page1"
    assert s["chunked"] is True
    assert s["chunkCount"] == len(payloads)
    assert s["textBytes"] == len(LONG.encode("utf-8"))
    assert s["maxPayloadBytes"] <= 120
    assert s["options"] == {"errorCorrectionLevel": "H"}

    single = plan_payloads("short", "p2", prof.byte_budget)
    assert build_summary("short", "p2", single, prof)["chunked"] is False

def test_written_files_scan_back(tmp_path):
    prof = dict_to_profile({"byte_budget": 120})
    text = LONG + "\r\nlast line"
    payloads = plan_payloads(text, "page1", prof.byte_budget)
    summary_path = write_outputs(str(tmp_path), "page1", payloads, build_summary(text, "page1", payloads, prof))

    with open(summary_path, encoding="utf-8") as f:
        files = json.load(f)["files"]
    paths = [str(tmp_path / name) for name in reversed(files)]

    sess = ScanSession(prof, clock=ReplayClock())
    outs = [sess.handle(raw) for _, raw in iter_scan_files(paths)]
    assert outs[-1].kind == "complete"
    assert outs[-1].text == text
