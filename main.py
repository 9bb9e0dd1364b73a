"""
Receipt journal assistant: entry point.

Reads receipt images / PDFs, extracts receipts with an LLM in batches of 10 images,
derives one journal entry per receipt, and writes a Yayoi Kaikei import CSV.

Usage:
  python main.py PATH [PATH ...] [--output-dir DIR] [--config config.yaml] [--edits edits.json] [--review-json]

- PATH: files or directories (directories: files directly inside, sorted by name).
- --edits: JSON list of journal entries (camelCase, matched by id) applied before export.
- --review-json: also write review.json (receipts without image payload + entries).
- The CSV is written whenever there are entries, including partial results after an error
  or after an edits file that could not be fully applied.
- Exit code: 0 success / nothing to process, 1 run error, 2 configuration or input error
  (including a bad edits file).
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from core.exceptions import ConfigError, EmptyExportError, ReceiptProcessingError
from core.models import InputFile, JournalEntry, RunState
from pipeline.batch_processor import BatchProcessor
from pipeline.receipt_pipeline import ReceiptPipeline
from pipeline.session import ReviewSession
from providers.factory import create_provider
from services.export_service import YayoiCsvExporter
from services.extraction_service import ReceiptExtractionService
from services.journal_service import JournalEntryDeriver
from services.normalizer_service import ImageNormalizerService
from utils.config import DEFAULT_MODELS, AppConfig, load_config, parse_unsupported_policy
from utils.logger import get_logger, setup_logging

REVIEW_JSON_NAME = "review.json"


def build_pipeline(config: AppConfig) -> ReceiptPipeline:
    """Wire provider and services from config."""
    llm = create_provider(
        config.llm.provider,
        base_url=config.llm.base_url or None,
        api_key=config.llm.api_key,
        model=config.llm.model,
        timeout_sec=config.llm.timeout_sec,
        max_tokens=config.llm.max_tokens,
    )
    extractor = ReceiptExtractionService(llm, debit_accounts=config.accounting.debit_accounts)
    deriver = JournalEntryDeriver(
        debit_accounts=config.accounting.debit_accounts,
        credit_account=config.accounting.credit_account,
    )
    normalizer = ImageNormalizerService(
        pdf_scale=config.pipeline.pdf_scale,
        jpeg_quality=config.pipeline.jpeg_quality,
        on_unsupported_file=config.pipeline.on_unsupported_file,
    )
    return ReceiptPipeline(
        normalizer,
        BatchProcessor(extractor, deriver, batch_size=config.pipeline.batch_size),
    )


def build_exporter(config: AppConfig) -> YayoiCsvExporter:
    return YayoiCsvExporter(
        default_tax_rate=config.accounting.default_tax_rate,
        tax_category=config.accounting.tax_category,
    )


def collect_input_files(paths: list[str]) -> list[InputFile]:
    """Files in argument order; a directory contributes its files sorted by name."""
    files: list[InputFile] = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            files.extend(InputFile.from_path(c) for c in sorted(p.iterdir()) if c.is_file())
        elif p.is_file():
            files.append(InputFile.from_path(p))
        else:
            raise FileNotFoundError(f"File not found: {p}")
    return files


def apply_edits(session: ReviewSession, edits_path: Path) -> int:
    """Apply user edits (list of entry dicts). Returns the number applied."""
    with open(edits_path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Edits file must contain a JSON list: {edits_path}")
    for item in data:
        session.update_entry(JournalEntry.from_dict(item))
    return len(data)


def save_review_json(session: ReviewSession, path: Path) -> None:
    """Receipts (without image payload) side by side with their entries."""
    path.parent.mkdir(parents=True, exist_ok=True)
    rows: list[dict[str, Any]] = []
    for receipt in session.receipts:
        entry = session.journal_entry(receipt.id)
        rows.append({
            "receipt": receipt.to_dict(),
            "journalEntry": entry.to_dict() if entry else None,
        })
    with open(path, "w", encoding="utf-8") as f:
        json.dump(rows, f, ensure_ascii=False, indent=2)
    get_logger(__name__).info("Saved review output to %s", path)


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Receipt journal assistant: receipts (images/PDF) -> LLM extraction -> Yayoi CSV",
    )
    parser.add_argument("paths", nargs="+", help="Receipt files or directories")
    parser.add_argument("--config", "-c", default=None, help="YAML config (default: config.yaml)")
    parser.add_argument("--output-dir", "-o", default=None, help="Directory for outputs (default: OUTPUT_DIR or output)")
    parser.add_argument("--batch-size", type=int, default=None, help="Images per extraction request (default: 10)")
    parser.add_argument("--provider", default=None, choices=["gemini", "openai"], help="LLM provider")
    parser.add_argument("--model", default=None, help="Model name")
    parser.add_argument(
        "--on-unsupported-file",
        default=None,
        choices=["ignore", "warn", "reject"],
        help="What to do with files that are neither images nor PDFs",
    )
    parser.add_argument("--edits", default=None, help="JSON file with edited journal entries")
    parser.add_argument("--review-json", action="store_true", help="Also write review.json")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
        model = args.model
        if args.provider and not model and args.provider != config.llm.provider:
            model = DEFAULT_MODELS[args.provider]
        config = config.with_overrides(**{
            "log_level": args.log_level,
            "output_dir": args.output_dir,
            "pipeline.batch_size": args.batch_size,
            "llm.provider": args.provider,
            "llm.model": model,
            "pipeline.on_unsupported_file": (
                parse_unsupported_policy(args.on_unsupported_file) if args.on_unsupported_file else None
            ),
        })
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    setup_logging(config.log_level)
    log = get_logger(__name__)

    try:
        files = collect_input_files(args.paths)
    except (FileNotFoundError, OSError) as e:
        print(str(e), file=sys.stderr)
        return 2

    session = ReviewSession(config.accounting.debit_accounts, on_status=print)
    state = build_pipeline(config).run(files, session)
    for notice in session.notices:
        print(notice)
    if state is RunState.ERROR:
        print(session.error_message, file=sys.stderr)

    edits_failed = False
    if args.edits:
        try:
            applied = apply_edits(session, Path(args.edits))
            log.info("Applied %d edit(s) from %s", applied, args.edits)
        except (ReceiptProcessingError, ValueError, KeyError, OSError) as e:
            # Entries are still exported below, with the edits applied before the failing one
            print(f"Could not apply edits: {e}", file=sys.stderr)
            edits_failed = True

    out_dir = Path(config.output_dir)
    if args.review_json and session.receipts:
        save_review_json(session, out_dir / REVIEW_JSON_NAME)

    exporter = build_exporter(config)
    try:
        exporter.write(out_dir / config.accounting.csv_file_name, session.journal_entries, session.receipts_by_id)
    except EmptyExportError as e:
        print(e)

    print(f"  receipts: {len(session.receipts)}")
    print(f"  state: {state.value}")
    if edits_failed:
        return 2
    return 1 if state is RunState.ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
