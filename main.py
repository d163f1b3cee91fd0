"""
CLI entry point for the résumé screening and ranking tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from config import DEFAULT_CONFIG_PATH, load_settings
from data_models import BatchReport, CandidateText, JobPosting
from errors import FileProcessingError, UpstreamServiceError, ValidationError
from evaluation_parser import EvaluationParser
from file_store import FlatFileStore
from insights import suggest_improvements, summarize_job_description
from job_ingest import TabularJobIngester, read_table_rows
from llm_handler import build_generative_client
from matcher import RankingEngine, ResumeEvaluator
from reporting import write_html_summary, write_report_json, write_single_json, write_xlsx_summary
from result_cache import ContentCache
from resume_loader import load_candidates

LOGGER = logging.getLogger(__name__)


class TruncatingFormatter(logging.Formatter):
    """Formatter that truncates log messages to a maximum length."""

    def __init__(self, max_length: int = 200, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_length = max_length

    def format(self, record):
        formatted = super().format(record)
        if len(formatted) > self.max_length:
            formatted = formatted[:self.max_length] + "... (truncated)"
        return formatted


def configure_logging(settings) -> None:
    """
    Configure logging according to settings.

    Args:
        settings: Application settings dataclass.
    """
    log_format = settings.log_format or "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
    datefmt = settings.log_date_format or "%Y-%m-%d %H:%M:%S"

    # Console output is truncated, the log file keeps full messages
    console_formatter = TruncatingFormatter(max_length=200, fmt=log_format, datefmt=datefmt)
    file_formatter = logging.Formatter(fmt=log_format, datefmt=datefmt)

    handlers = []
    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    handlers.append(console_handler)

    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Suppress verbose HTTP logging from various libraries
    for noisy in ("urllib3", "urllib3.connectionpool", "httpcore", "httpx", "google", "grpc"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Score résumés and rank them against job postings.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="JSON configuration file")
    parser.add_argument(
        "--resume",
        dest="resumes",
        action="append",
        type=Path,
        required=True,
        help="Résumé file (.pdf, .docx, .txt); repeat for several",
    )
    jobs = parser.add_mutually_exclusive_group()
    jobs.add_argument("--jd-text", help="Job description text")
    jobs.add_argument("--jd-file", type=Path, help="File holding one job description")
    jobs.add_argument("--jobs", help="Job sheet (.csv, .xlsx) path or CSV URL")
    parser.add_argument("--company", default="", help="Company for --jd-text/--jd-file")
    parser.add_argument("--role", default="", help="Role for --jd-text/--jd-file")
    return parser.parse_args(argv)


def load_jobs(args: argparse.Namespace) -> List[JobPosting]:
    """Postings named on the command line; empty for a résumé-only review."""
    if args.jobs:
        return TabularJobIngester().ingest(read_table_rows(args.jobs))
    if args.jd_file:
        if not args.jd_file.exists():
            raise FileProcessingError(f"Job description file not found: {args.jd_file}")
        description = args.jd_file.read_text(encoding="utf-8")
    else:
        description = args.jd_text
    if description is None:
        return []
    return [JobPosting(description=description, company_name=args.company, role_name=args.role)]


def add_insights(client, report: BatchReport) -> None:
    """Attach a job summary and improvement hints to each job with a winner."""
    for job in report.jobs:
        best = job.report.best_match
        if best is None:
            continue
        job.insights = {
            "summary": summarize_job_description(client, job.posting.description),
            "improvements": suggest_improvements(client, job.posting.description, best),
        }


def save_renamed(report: BatchReport, candidates: Sequence[CandidateText], target_dir: Path) -> int:
    """Copy each job winner's file under its new label; returns the number of copies."""
    store = FlatFileStore(target_dir)
    saved = 0
    for job in report.jobs:
        best = job.report.best_match
        if best is None or not best.new_candidate_label or best.candidate_index is None:
            continue
        candidate = candidates[best.candidate_index]
        if candidate.source_path is None:
            continue
        name = store.store_as(
            candidate.source_path.read_bytes(), best.new_candidate_label + candidate.source_path.suffix
        )
        LOGGER.info("Saved %s as %s", candidate.name, name)
        saved += 1
    return saved


def run(settings, args: argparse.Namespace, client=None) -> None:
    """
    Execute one screening run and write its reports.

    Args:
        settings: Application settings dataclass.
        args: Parsed command line.
        client: Generative client; built from settings when omitted.
    """
    candidates = load_candidates(args.resumes)
    jobs = load_jobs(args)

    client = client or build_generative_client(settings)
    cache = ContentCache(enabled=settings.cache_enabled, ttl_seconds=settings.cache_ttl_hours * 3600)
    evaluator = ResumeEvaluator(client, cache, EvaluationParser(settings.match_threshold))
    engine = RankingEngine(evaluator, max_workers=settings.max_workers)

    if not jobs:
        records = [engine.evaluate_single(candidate) for candidate in candidates]
        write_single_json(records, settings.report_json)
        for record in records:
            LOGGER.info("%s: ATS score %.1f", record.candidate_name, record.ats_score)
    else:
        report = engine.evaluate_batch(candidates, jobs)
        if settings.generate_insights:
            add_insights(client, report)
        write_report_json(report, settings.report_json)
        write_html_summary(report, settings.summary_file)
        write_xlsx_summary(report, settings.xlsx_file)
        if settings.renamed_dir:
            saved = save_renamed(report, candidates, settings.renamed_dir)
            LOGGER.info("Saved %d renamed resumes to %s", saved, settings.renamed_dir)
        LOGGER.info(
            "Ranked %d resumes against %d jobs: %d matched, %d unmatched. Summary: %s",
            report.total_candidates,
            report.total_jobs,
            report.total_matched,
            report.total_unmatched,
            settings.summary_file,
        )

    LOGGER.info("Cache status: %s", cache.status())


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Execute the screening workflow."""
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as exc:
        logging.error("Configuration error: %s", exc)
        sys.exit(1)

    configure_logging(settings)
    LOGGER.info("Starting resume screening")
    LOGGER.info(
        "Configuration: provider=%s, model=%s, workers=%d, cache=%s",
        settings.llm_provider,
        settings.model,
        settings.max_workers,
        settings.cache_enabled,
    )

    try:
        run(settings, args)
        LOGGER.info("Finished run successfully.")
    except (ValidationError, FileProcessingError) as exc:
        LOGGER.error("Input error: %s", exc.user_message)
        sys.exit(2)
    except UpstreamServiceError as exc:
        LOGGER.error("Generative service error (%s): %s", exc.error_code, exc.user_message)
        LOGGER.debug("Upstream failure detail: %s", exc)
        sys.exit(3)
    except Exception as exc:
        LOGGER.exception("Fatal error occurred: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
