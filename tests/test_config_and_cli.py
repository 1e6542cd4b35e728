import csv
import json
from pathlib import Path

import pytest

from tutorial_pipeline import run_pipeline
from tutorial_pipeline.config_loader import (
    apply_overrides,
    deep_merge,
    get_int,
    get_str_list,
    load_effective_config,
)
from tutorial_pipeline.errors import ConfigurationError

PACKAGE_DIR = Path(run_pipeline.__file__).parent


@pytest.fixture(autouse=True)
def fresh_exhausted_models():
    yield
    run_pipeline.EXHAUSTED_MODELS.clear()


def test_deep_merge():
    base = {"llm": {"provider": "gemini", "gemini": {"models": ["a", "b"], "temperature": 0.4}}, "x": 1}
    override = {"llm": {"gemini": {"models": ["c"]}}, "y": 2}
    merged = deep_merge(base, override)
    assert merged["llm"]["gemini"] == {"models": ["c"], "temperature": 0.4}
    assert merged["llm"]["provider"] == "gemini"
    assert merged["x"] == 1 and merged["y"] == 2


def test_load_effective_config(tmp_path):
    (tmp_path / "config.default.yaml").write_text("chunking:\n  max_chars: 100\n  overlap_chars: 10\n")
    cfg, has_local = load_effective_config(tmp_path)
    assert cfg == {"chunking": {"max_chars": 100, "overlap_chars": 10}}
    assert has_local is False

    (tmp_path / "config.yaml").write_text("chunking:\n  max_chars: 50\n")
    cfg, has_local = load_effective_config(tmp_path)
    assert cfg["chunking"] == {"max_chars": 50, "overlap_chars": 10}
    assert has_local is True


def test_load_effective_config_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        load_effective_config(tmp_path)
    (tmp_path / "config.default.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        load_effective_config(tmp_path)


def test_packaged_default_config_is_valid(tmp_path):
    cfg, has_local = load_effective_config(PACKAGE_DIR, local_dir=tmp_path)
    assert has_local is False
    assert cfg["chunking"] == {"max_chars": 20000, "overlap_chars": 500}
    assert cfg["llm"]["quota_signals"]["status_codes"] == [429, 503]
    assert cfg["llm"]["gemini"]["models"][0] == "gemini-2.5-flash"


def test_apply_overrides_skips_none():
    cfg = {"chunking": {"max_chars": 1, "overlap_chars": 0}}
    out = apply_overrides(cfg, {"chunking.max_chars": 99, "chunking.overlap_chars": None, "output.dir": "o"})
    assert out == {"chunking": {"max_chars": 99, "overlap_chars": 0}, "output": {"dir": "o"}}


def test_typed_getters():
    assert get_int({"n": "12"}, "n", 1) == 12
    assert get_int({}, "n", 1) == 1
    with pytest.raises(ConfigurationError):
        get_int({"n": "many"}, "n", 1)
    assert get_str_list({"l": "en"}, "l", []) == ["en"]
    assert get_str_list({}, "l", ["x"]) == ["x"]


def narration(total_chars):
    out = []
    i = 0
    while sum(len(s) + 1 for s in out) < total_chars:
        out.append(f"Next we configure service number {i} carefully.")
        i += 1
    return " ".join(out)[:total_chars]


def test_cli_with_dummy_provider(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    transcript = tmp_path / "lecture.txt"
    transcript.write_text(narration(5000), encoding="utf-8")
    outdir = tmp_path / "out"

    code = run_pipeline.main([
        "--input", str(transcript),
        "--outdir", str(outdir),
        "--llm-provider", "dummy",
        "--max-chars", "2000",
        "--overlap-chars", "200",
    ])
    assert code == 0

    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary["transcript_source"] == "file (txt)"
    assert summary["chunks_processed"] == 3
    assert summary["models_used"] == ["dummy-1"] * 3

    doc = (outdir / "lecture.md").read_text(encoding="utf-8")
    assert sum(1 for ln in doc.splitlines() if ln.startswith("# ")) == 1
    assert doc.count("## Summary") == 1
    assert doc.index("## Summary") > doc.index("## 3. Part 3")

    with open(outdir / "lecture_chunks.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["chunk_id"] for r in rows] == ["1", "2", "3"]
    assert {r["model_used"] for r in rows} == {"dummy-1"}


def test_cli_reports_errors_with_exit_codes(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert run_pipeline.main(["--input", str(tmp_path / "missing.txt"), "--llm-provider", "dummy", "--outdir", str(tmp_path)]) == 2
    empty = tmp_path / "empty.txt"
    empty.write_text("   ", encoding="utf-8")
    assert run_pipeline.main(["--input", str(empty), "--llm-provider", "dummy", "--outdir", str(tmp_path)]) == 3
    assert run_pipeline.main(["--url", "https://vimeo.com/1", "--llm-provider", "dummy", "--outdir", str(tmp_path)]) == 2
    assert run_pipeline.main([
        "--input", str(empty), "--llm-provider", "dummy", "--max-chars", "100", "--overlap-chars", "100",
    ]) == 2


def test_local_config_comes_from_working_directory(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text(
        "chunking:\n  max_chars: 1000\n  overlap_chars: 100\noutput:\n  dir: docs\n", encoding="utf-8"
    )
    transcript = tmp_path / "talk.txt"
    transcript.write_text(narration(2500), encoding="utf-8")

    assert run_pipeline.main(["--input", "talk.txt", "--llm-provider", "dummy"]) == 0
    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary["chunks_processed"] == 3
    assert (tmp_path / "docs" / "talk.md").exists()
