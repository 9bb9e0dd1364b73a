"""
Accounting constants and user-facing messages.
Messages are Japanese because the export target (Yayoi Kaikei) is a Japanese tool.
"""

from __future__ import annotations

# Closed category set offered to the model and to the editor. First entry is the default.
DEBIT_ACCOUNTS: tuple[str, ...] = (
    "消耗品費",
    "旅費交通費",
    "会議費",
    "接待交際費",
    "通信費",
    "新聞図書費",
    "水道光熱費",
    "車両費",
    "租税公課",
    "支払手数料",
    "福利厚生費",
    "雑費",
)
CREDIT_ACCOUNT = "現金"

UNKNOWN_STORE = "不明な店名"
NO_DESCRIPTION = "摘要なし"

DEFAULT_TAX_RATE = 10
TAX_CATEGORY_OUT_OF_SCOPE = "対象外"
CSV_FILE_NAME = "仕訳データ.csv"

# Yayoi Kaikei import layout
CSV_HEADERS: tuple[str, ...] = (
    "取引日付",
    "借方勘定科目",
    "借方補助科目",
    "貸方勘定科目",
    "貸方補助科目",
    "借方税区分",
    "貸方税区分",
    "借方金額",
    "貸方金額",
    "摘要",
    "税率",
    "インボイス",
)

BATCH_SIZE = 10
PDF_SCALE = 2.0
JPEG_QUALITY = 90

# ---------------------------------------------------------------------------
# Status channel
# ---------------------------------------------------------------------------

MSG_PROCESSING_FILE = "処理中: {name}"
MSG_EXTRACTING = "AIがレシートを読み取っています..."
MSG_BATCH_PROGRESS = "AI分析中: バッチ {batch}/{total_batches} (画像 {start}～{end}/{total_images}) を処理しています..."
MSG_SUCCESS = "{count}件のレシートを読み取りました。"
MSG_EMPTY = "処理できるファイルがありませんでした。"
MSG_ERROR_STATUS = "エラーが発生しました。"

# ---------------------------------------------------------------------------
# Error channel / notices
# ---------------------------------------------------------------------------

MSG_PDF_FAILED = "PDFの処理中にエラーが発生しました: {name}"
MSG_UNSUPPORTED_REJECTED = "対応していないファイル形式です: {name}"
MSG_UNSUPPORTED_SKIPPED = "対応していないファイル形式のためスキップしました: {name}"
MSG_QUOTA_EXCEEDED = "APIの1日の利用上限に達しました。明日もう一度お試しください。"
MSG_MALFORMED_RESPONSE = "AIからの応答を解析できませんでした。予期しない形式のデータが返されました。"
MSG_LENGTH_MISMATCH = "AIからの応答が、リクエストした画像の数と一致しませんでした。"
MSG_EXTRACTION_FAILED = "AIによるレシートの読み取りに失敗しました。画像の品質を確認するか、再度お試しください。"
MSG_LEDGER_MISMATCH = "レシートと仕訳の対応関係に不整合が見つかりました。"
MSG_EMPTY_EXPORT = "ダウンロードする仕訳データがありません。"
MSG_ENTRY_NOT_FOUND = "指定された仕訳が見つかりません: {entry_id}"
MSG_INVALID_DEBIT_ACCOUNT = "選択できない勘定科目です: {account}"
MSG_RUN_ACTIVE = "処理中のため開始できません。完了するまでお待ちください。"
MSG_UNKNOWN_ERROR = "不明なエラーが発生しました。"
