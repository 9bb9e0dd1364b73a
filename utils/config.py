"""
Configuration loader: YAML + env overrides.
No hardcoded model names in services; all from config.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from core import constants
from core.exceptions import ConfigError
from core.models import UnsupportedFilePolicy

PROVIDERS = ("gemini", "openai")
DEFAULT_MODELS = {"gemini": "gemini-2.5-flash", "openai": "gpt-4o-mini"}


def _coerce_float(s: Any, default: float = 0.0) -> float:
    if s is None or s == "":
        return default
    try:
        return float(s)
    except (TypeError, ValueError):
        return default


def _coerce_int(s: Any, default: int = 0) -> int:
    if s is None or s == "":
        return default
    try:
        return int(s)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class LLMConfig:
    """Extraction endpoint and model configuration."""

    provider: str = "gemini"
    base_url: str = ""
    api_key: str = ""
    model: str = DEFAULT_MODELS["gemini"]
    timeout_sec: int = 120
    max_tokens: int = 8192


@dataclass(frozen=True)
class PipelineSettings:
    """Batching and file normalization."""

    batch_size: int = constants.BATCH_SIZE
    pdf_scale: float = constants.PDF_SCALE
    jpeg_quality: int = constants.JPEG_QUALITY
    on_unsupported_file: UnsupportedFilePolicy = UnsupportedFilePolicy.IGNORE


@dataclass(frozen=True)
class AccountingConfig:
    """Account labels and CSV export policy."""

    debit_accounts: tuple[str, ...] = constants.DEBIT_ACCOUNTS
    credit_account: str = constants.CREDIT_ACCOUNT
    default_tax_rate: float = constants.DEFAULT_TAX_RATE
    tax_category: str = constants.TAX_CATEGORY_OUT_OF_SCOPE
    csv_file_name: str = constants.CSV_FILE_NAME


@dataclass(frozen=True)
class AppConfig:
    """Immutable application configuration. Built from YAML + env."""

    log_level: str = "INFO"
    output_dir: str = "output"
    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    accounting: AccountingConfig = field(default_factory=AccountingConfig)

    def with_overrides(self, **overrides: Any) -> AppConfig:
        """
        Return new config with replaced keys. Top-level keys replace whole values;
        dotted section keys (e.g. "pipeline.batch_size") replace one nested field.
        None values are ignored.
        """
        top: dict[str, Any] = {}
        nested: dict[str, dict[str, Any]] = {}
        for k, v in overrides.items():
            if v is None:
                continue
            if "." in k:
                section, name = k.split(".", 1)
                nested.setdefault(section, {})[name] = v
            else:
                top[k] = v
        cfg = replace(self, **top) if top else self
        for section, values in nested.items():
            current = getattr(cfg, section, None)
            if current is None:
                raise ConfigError(f"Unknown config section: {section}")
            cfg = replace(cfg, **{section: replace(current, **values)})
        return validate_config(cfg)


def validate_config(cfg: AppConfig) -> AppConfig:
    """Raise ConfigError for values the pipeline cannot run with; returns cfg unchanged."""
    if cfg.llm.provider not in PROVIDERS:
        raise ConfigError(f"Unknown LLM provider: {cfg.llm.provider}. Use one of {', '.join(PROVIDERS)}.")
    if cfg.pipeline.batch_size < 1:
        raise ConfigError(f"batch_size must be >= 1, got {cfg.pipeline.batch_size}")
    if cfg.pipeline.pdf_scale <= 0:
        raise ConfigError(f"pdf_scale must be > 0, got {cfg.pipeline.pdf_scale}")
    if not 1 <= cfg.pipeline.jpeg_quality <= 100:
        raise ConfigError(f"jpeg_quality must be in 1..100, got {cfg.pipeline.jpeg_quality}")
    if not isinstance(cfg.pipeline.on_unsupported_file, UnsupportedFilePolicy):
        raise ConfigError(f"Invalid on_unsupported_file: {cfg.pipeline.on_unsupported_file}")
    if not cfg.accounting.debit_accounts:
        raise ConfigError("accounting.debit_accounts must not be empty")
    return cfg


def parse_unsupported_policy(value: Any) -> UnsupportedFilePolicy:
    if isinstance(value, UnsupportedFilePolicy):
        return value
    try:
        return UnsupportedFilePolicy(str(value).strip().lower())
    except ValueError as e:
        raise ConfigError(
            f"Invalid on_unsupported_file: {value}. Use ignore, warn or reject."
        ) from e


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def _config_from_dict(data: dict[str, Any]) -> AppConfig:
    """Build AppConfig from nested dict. Env overrides applied in load_config."""
    llm_data = data.get("llm") or {}
    pipe_data = data.get("pipeline") or {}
    acc_data = data.get("accounting") or {}
    provider = str(llm_data.get("provider", "gemini")).strip().lower()
    accounts = acc_data.get("debit_accounts")
    return AppConfig(
        log_level=str(data.get("log_level", "INFO")),
        output_dir=str(data.get("output_dir", "output")),
        llm=LLMConfig(
            provider=provider,
            base_url=str(llm_data.get("base_url") or ""),
            api_key=str(llm_data.get("api_key") or ""),
            model=str(llm_data.get("model") or DEFAULT_MODELS.get(provider, "")),
            timeout_sec=_coerce_int(llm_data.get("timeout_sec"), 120),
            max_tokens=_coerce_int(llm_data.get("max_tokens"), 8192),
        ),
        pipeline=PipelineSettings(
            batch_size=_coerce_int(pipe_data.get("batch_size"), constants.BATCH_SIZE),
            pdf_scale=_coerce_float(pipe_data.get("pdf_scale"), constants.PDF_SCALE),
            jpeg_quality=_coerce_int(pipe_data.get("jpeg_quality"), constants.JPEG_QUALITY),
            on_unsupported_file=parse_unsupported_policy(pipe_data.get("on_unsupported_file", "ignore")),
        ),
        accounting=AccountingConfig(
            debit_accounts=tuple(str(a) for a in accounts) if accounts else constants.DEBIT_ACCOUNTS,
            credit_account=str(acc_data.get("credit_account") or constants.CREDIT_ACCOUNT),
            default_tax_rate=_coerce_float(acc_data.get("default_tax_rate"), constants.DEFAULT_TAX_RATE),
            tax_category=str(acc_data.get("tax_category") or constants.TAX_CATEGORY_OUT_OF_SCOPE),
            csv_file_name=str(acc_data.get("csv_file_name") or constants.CSV_FILE_NAME),
        ),
    )


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """
    Load config from YAML file, then apply env overrides.
    Env vars: LOG_LEVEL, OUTPUT_DIR, LLM_PROVIDER, LLM_BASE_URL, LLM_API_KEY (or GEMINI_API_KEY / API_KEY),
    LLM_MODEL, BATCH_SIZE, ON_UNSUPPORTED_FILE, DEFAULT_TAX_RATE.
    """
    load_dotenv()
    path = Path(config_path) if config_path else Path("config.yaml")
    cfg = _config_from_dict(_load_yaml(path))

    overrides: dict[str, Any] = {
        "log_level": os.getenv("LOG_LEVEL") or None,
        "output_dir": os.getenv("OUTPUT_DIR") or None,
    }
    provider = os.getenv("LLM_PROVIDER")
    if provider:
        provider = provider.strip().lower()
        overrides["llm.provider"] = provider
        # Switching provider without naming a model: use that provider's default
        if not os.getenv("LLM_MODEL") and provider != cfg.llm.provider:
            overrides["llm.model"] = DEFAULT_MODELS.get(provider, cfg.llm.model)
    overrides["llm.base_url"] = os.getenv("LLM_BASE_URL") or None
    overrides["llm.model"] = os.getenv("LLM_MODEL") or overrides.get("llm.model")
    api_key = os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
    overrides["llm.api_key"] = api_key or None
    if os.getenv("BATCH_SIZE"):
        overrides["pipeline.batch_size"] = _coerce_int(os.getenv("BATCH_SIZE"), cfg.pipeline.batch_size)
    if os.getenv("ON_UNSUPPORTED_FILE"):
        overrides["pipeline.on_unsupported_file"] = parse_unsupported_policy(os.getenv("ON_UNSUPPORTED_FILE"))
    if os.getenv("DEFAULT_TAX_RATE"):
        overrides["accounting.default_tax_rate"] = _coerce_float(
            os.getenv("DEFAULT_TAX_RATE"), cfg.accounting.default_tax_rate
        )
    return cfg.with_overrides(**overrides)
