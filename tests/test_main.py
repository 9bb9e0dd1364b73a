"""
End-to-end CLI tests with the LLM provider replaced by a fake.
Real normalizer, extraction service, deriver and exporter.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence
from unittest.mock import patch

import pytest

import main
from core.interfaces import ILLMProvider
from core.models import LLMResponse, NormalizedImage

BOM = b"\xef\xbb\xbf"


class OneReceiptPerImageProvider(ILLMProvider):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def generate_structured(
        self,
        prompt: str,
        images: Sequence[NormalizedImage],
        response_schema: dict[str, Any],
        **kwargs: Any,
    ) -> LLMResponse:
        if self.fail:
            raise RuntimeError("Quota exceeded")
        receipts = [
            {
                "receipts": [
                    {
                        "storeName": f"店{i}",
                        "date": "2024-05-01",
                        "totalAmount": 1000 + i,
                        "taxRate": 8,
                        "suggestedDebitAccount": "会議費",
                        "suggestedDescription": "打合せ",
                    }
                ]
            }
            for i, _ in enumerate(images)
        ]
        return LLMResponse(text=json.dumps(receipts, ensure_ascii=False))


@pytest.fixture
def receipts_dir(tmp_path: Path, png_bytes: bytes, clean_env) -> Path:
    clean_env.chdir(tmp_path)
    d = tmp_path / "receipts"
    d.mkdir()
    for name in ("b.png", "a.png"):
        (d / name).write_bytes(png_bytes)
    (d / "notes.txt").write_text("not a receipt", encoding="utf-8")
    return d


def _run(argv: list[str], provider: ILLMProvider) -> int:
    with patch("main.create_provider", return_value=provider):
        return main.main(argv)


def test_cli_writes_csv(receipts_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    code = _run([str(receipts_dir), "--output-dir", str(out), "--review-json"], OneReceiptPerImageProvider())

    assert code == 0
    content = (out / "仕訳データ.csv").read_bytes()
    assert content.startswith(BOM)
    lines = content[len(BOM):].decode("utf-8").split("\r\n")
    # a.png sorts before b.png
    assert '"店0 / 打合せ","8%","0"' in lines[1]
    assert '"1000","1000"' in lines[1]
    review = json.loads((out / "review.json").read_text(encoding="utf-8"))
    assert review[0]["receipt"]["sourceFileName"] == "a.png"
    assert "originalImage" not in review[0]["receipt"]
    assert review[0]["journalEntry"]["debitAccount"] == "会議費"


def test_cli_applies_edits(receipts_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    edits = tmp_path / "edits.json"
    # Receipt ids embed the extraction call time; pin it so both runs produce the same ids
    with patch("services.extraction_service.time.time", return_value=1.0):
        _run([str(receipts_dir), "-o", str(out), "--review-json"], OneReceiptPerImageProvider())
        entry = json.loads((out / "review.json").read_text(encoding="utf-8"))[0]["journalEntry"]
        assert entry["id"] == "a.png-1000-0"
        entry.update(debitAccount="雑費", description="")
        edits.write_text(json.dumps([entry], ensure_ascii=False), encoding="utf-8")
        code = _run([str(receipts_dir), "-o", str(out), "--edits", str(edits)], OneReceiptPerImageProvider())

    assert code == 0
    text = (out / "仕訳データ.csv").read_bytes()[len(BOM):].decode("utf-8")
    assert '"雑費"' in text
    assert '"店0 / 摘要なし"' in text


def test_cli_unknown_edit_target(receipts_dir: Path, tmp_path: Path) -> None:
    edits = tmp_path / "edits.json"
    edits.write_text(json.dumps([{"id": "missing", "debitAccount": "雑費"}]), encoding="utf-8")
    out = tmp_path / "out"
    code = _run([str(receipts_dir), "-o", str(out), "--edits", str(edits)], OneReceiptPerImageProvider())
    assert code == 2
    # Extracted entries are still exported, unedited
    text = (out / "仕訳データ.csv").read_bytes()[len(BOM):].decode("utf-8")
    assert '"店0 / 打合せ"' in text
    assert '"雑費"' not in text


def test_cli_run_error_exit_code(receipts_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    code = _run([str(receipts_dir), "-o", str(out)], OneReceiptPerImageProvider(fail=True))
    assert code == 1
    assert not (out / "仕訳データ.csv").exists()


def test_cli_nothing_to_process(tmp_path: Path, clean_env) -> None:
    clean_env.chdir(tmp_path)
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")
    code = _run([str(tmp_path / "notes.txt"), "-o", str(tmp_path / "out")], OneReceiptPerImageProvider())
    assert code == 0
    assert not (tmp_path / "out" / "仕訳データ.csv").exists()


def test_cli_missing_path(tmp_path: Path, clean_env) -> None:
    clean_env.chdir(tmp_path)
    assert _run([str(tmp_path / "nope.png")], OneReceiptPerImageProvider()) == 2


def test_cli_bad_config(tmp_path: Path, clean_env) -> None:
    clean_env.chdir(tmp_path)
    clean_env.setenv("BATCH_SIZE", "0")
    assert _run([str(tmp_path)], OneReceiptPerImageProvider()) == 2
