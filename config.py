"""
Application configuration management.

Loads non-sensitive configuration from JSON and the generative service API
key from a secret file or environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("ats_config.json")
DEFAULT_LOG_DIR = Path("logs")
DEFAULT_OUTPUT_DIR = Path("reports")
REPORT_FILENAME = "ranking_report.json"
SUMMARY_FILENAME = "ranking_summary.html"
XLSX_FILENAME = "ranking_summary.xlsx"
RENAMED_DIRNAME = "renamed_resumes"
PLACEHOLDER_API_KEYS = {"your-openai-api-key-here", "your-gemini-api-key-here"}
API_KEY_ENV_VARS = {"openai": "OPENAI_API_KEY", "gemini": "GEMINI_API_KEY"}
DEFAULT_MODELS = {"openai": "gpt-4o-mini", "gemini": "gemini-1.5-flash-latest"}


@dataclass(frozen=True)
class Settings:
    """Container for application configuration."""

    llm_provider: str
    model: str
    api_key: str
    api_base_url: str
    temperature: float
    max_tokens: int
    timeout_seconds: float
    retry_attempts: int
    cache_enabled: bool
    cache_ttl_hours: float
    max_workers: int
    match_threshold: float
    report_json: Path
    summary_file: Path
    xlsx_file: Path
    renamed_dir: Optional[Path]
    generate_insights: bool
    log_file: Optional[Path]
    log_format: Optional[str]
    log_date_format: Optional[str]
    debug: bool


def _read_json(path: Path) -> Dict[str, Any]:
    """Read a JSON file into a dictionary."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file missing: {path}") from None
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in configuration file: {path}") from exc


def _resolve_path(base: Path, value: Optional[str]) -> Optional[Path]:
    """Resolve a possibly relative path against a base directory."""
    if not value:
        return None
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base / candidate).resolve()


def _load_secret(base: Path, key_path: Optional[str]) -> Optional[str]:
    """Load a secret value from a text file."""
    if not key_path:
        return None
    secret_file = _resolve_path(base, key_path)
    if secret_file and secret_file.exists():
        return secret_file.read_text(encoding="utf-8").strip()
    LOGGER.warning("Secret file %s not found; skipping", secret_file)
    return None


def _number(config: Dict[str, Any], key: str, default: float, cast=float):
    try:
        return cast(config.get(key, default))
    except (TypeError, ValueError):
        raise ValueError(f"Config '{key}' must be a number.") from None


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """
    Load application settings from config file and environment variables.

    Args:
        config_path: Path to the JSON configuration file.

    Returns:
        Settings dataclass populated with configuration values.

    Raises:
        FileNotFoundError: The configuration file does not exist.
        ValueError: A value is missing or out of range.
    """
    config_path = config_path.resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    config = _read_json(config_path)
    base_dir = config_path.parent

    provider = str(config.get("llm_provider", "openai")).lower()
    if provider not in API_KEY_ENV_VARS:
        raise ValueError(f"Config 'llm_provider' must be one of {sorted(API_KEY_ENV_VARS)}.")

    temperature = _number(config, "temperature", 0.1)
    if not 0.0 <= temperature <= 2.0:
        raise ValueError("Config 'temperature' must be between 0 and 2.")
    max_tokens = _number(config, "max_tokens", 1500, int)
    if max_tokens <= 0:
        raise ValueError("Config 'max_tokens' must be > 0.")
    timeout_seconds = _number(config, "timeout_seconds", 30.0)
    if timeout_seconds <= 0:
        raise ValueError("Config 'timeout_seconds' must be > 0.")
    retry_attempts = _number(config, "retry_attempts", 3, int)
    if retry_attempts < 1:
        raise ValueError("Config 'retry_attempts' must be >= 1.")
    max_workers = _number(config, "max_workers", 4, int)
    if max_workers < 1:
        raise ValueError("Config 'max_workers' must be >= 1.")
    cache_ttl_hours = _number(config, "cache_ttl_hours", 24.0)
    if cache_ttl_hours <= 0:
        raise ValueError("Config 'cache_ttl_hours' must be > 0.")
    match_threshold = _number(config, "match_threshold", 6.0)

    secret_key = _load_secret(base_dir, config.get("api_key_file"))
    api_key = secret_key or os.environ.get(API_KEY_ENV_VARS[provider], "").strip()
    if not api_key or api_key in PLACEHOLDER_API_KEYS:
        raise ValueError(
            f"API key missing. Set {API_KEY_ENV_VARS[provider]} env or provide api_key_file."
        )

    output_dir = _resolve_path(base_dir, config.get("output_dir")) or DEFAULT_OUTPUT_DIR.resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    report_json = _resolve_path(base_dir, config.get("report_json")) or output_dir / REPORT_FILENAME
    summary_file = _resolve_path(base_dir, config.get("summary_file")) or output_dir / SUMMARY_FILENAME
    xlsx_file = _resolve_path(base_dir, config.get("xlsx_file")) or output_dir / XLSX_FILENAME

    renamed_dir = None
    if config.get("save_renamed", True):
        renamed_dir = _resolve_path(base_dir, config.get("renamed_dir")) or output_dir / RENAMED_DIRNAME

    log_file_str = config.get("log_file")
    if log_file_str:
        # Replace timestamp placeholder if present
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = _resolve_path(base_dir, log_file_str.replace("YYYYMMDD_HHMMSS", timestamp))
        log_file.parent.mkdir(parents=True, exist_ok=True)
    else:
        log_file = None

    return Settings(
        llm_provider=provider,
        model=config.get("model") or DEFAULT_MODELS[provider],
        api_key=api_key,
        api_base_url=config.get("api_base_url", "https://api.openai.com/v1"),
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_seconds=timeout_seconds,
        retry_attempts=retry_attempts,
        cache_enabled=bool(config.get("cache_enabled", True)),
        cache_ttl_hours=cache_ttl_hours,
        max_workers=max_workers,
        match_threshold=match_threshold,
        report_json=report_json,
        summary_file=summary_file,
        xlsx_file=xlsx_file,
        renamed_dir=renamed_dir,
        generate_insights=bool(config.get("generate_insights", False)),
        log_file=log_file,
        log_format=config.get("log_format"),
        log_date_format=config.get("log_date_format"),
        debug=bool(config.get("debug", False)),
    )
