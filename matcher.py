"""
Core pipeline coordinating résumé evaluation and per-job ranking.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from data_models import (
    BatchReport,
    CandidateText,
    EvaluationMode,
    EvaluationRecord,
    JobPosting,
    JobReport,
    MatchReport,
    MatchStatus,
    PairError,
)
from errors import EvaluationCancelled, FileProcessingError, UpstreamServiceError, ValidationError
from evaluation_parser import EvaluationParser, build_candidate_label
from prompts import build_job_match_prompt, build_resume_only_prompt
from result_cache import ContentCache, fingerprint
from validation import sanitize_text, validate_text

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
JOB_TEXT_SEPARATOR = "|||"

PairOutcome = Union[EvaluationRecord, PairError]


class ResumeEvaluator:
    """Runs one résumé (optionally against one job) through cache, service and parser."""

    def __init__(self, client, cache: ContentCache, parser: Optional[EvaluationParser] = None) -> None:
        """
        Initialize the evaluator.

        Args:
            client: Object exposing ``invoke(prompt, cancel_event=None) -> str``.
            cache: Shared result cache.
            parser: Answer parser; a default one is created when omitted.
        """
        self.client = client
        self.cache = cache
        self.parser = parser or EvaluationParser()

    def evaluate_text(
        self,
        resume_text: str,
        job_description: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EvaluationRecord:
        """
        Evaluate raw résumé text, in job-match mode when a description is given.

        Returns:
            A record owned by the caller; cached records are handed out as copies.

        Raises:
            ValidationError: Missing or invalid input text.
            UpstreamServiceError: The generative service failed.
        """
        validate_text(resume_text, "resume text", check_content=False)
        if job_description is None:
            mode = EvaluationMode.RESUME_ONLY
            key_text = resume_text
            prompt = build_resume_only_prompt(resume_text)
        else:
            validate_text(job_description, "job description")
            clean_description = sanitize_text(job_description)
            if not clean_description:
                raise ValidationError("job description is empty after sanitization")
            mode = EvaluationMode.JOB_MATCH
            key_text = f"{resume_text}{JOB_TEXT_SEPARATOR}{clean_description}"
            prompt = build_job_match_prompt(resume_text, clean_description)

        key = fingerprint(mode, key_text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        raw = self.client.invoke(prompt, cancel_event=cancel_event)
        record = self.parser.parse(raw, mode, resume_text)
        self.cache.put(key, record)
        return record

    def evaluate(
        self,
        candidate: CandidateText,
        job: Optional[JobPosting] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EvaluationRecord:
        record = self.evaluate_text(candidate.text, job.description if job else None, cancel_event)
        record.candidate_name = candidate.name
        return record


def _statistics(scores: Sequence[float]) -> Tuple[float, float, float]:
    """Average, highest and lowest score rounded to 2 decimals; zeros when empty."""
    if not scores:
        return 0.0, 0.0, 0.0
    return (
        round(sum(scores) / len(scores), 2),
        round(max(scores), 2),
        round(min(scores), 2),
    )


def _match_report(ranked: List[EvaluationRecord], matched: List[EvaluationRecord]) -> MatchReport:
    average, highest, lowest = _statistics([record.ats_score for record in matched])
    return MatchReport(
        best_match=ranked[0] if ranked else None,
        other_matches=ranked[1:],
        average_score=average,
        highest_score=highest,
        lowest_score=lowest,
    )


def format_all_scores(ranked: Sequence[EvaluationRecord], errors: Sequence[PairError] = ()) -> str:
    """One ``name: score (SELECTED|NOT SELECTED)`` line per candidate, best first."""
    lines = []
    for position, record in enumerate(ranked):
        marker = "SELECTED" if position == 0 else "NOT SELECTED"
        lines.append(f"{record.candidate_name}: {record.ats_score:.1f} ({marker})")
    for error in errors:
        lines.append(f"{error.candidate_name}: {error.ats_score:.1f} (ERROR)")
    return "\n".join(lines)


class RankingEngine:
    """
    Evaluates every candidate against every job and ranks per job.

    Pairs run concurrently; ranking starts only after all of them finished.
    Within a job the highest score wins, ties going to the candidate that
    came first in the input. Exactly one candidate per job is MATCHED.
    """

    def __init__(
        self,
        evaluator: ResumeEvaluator,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.evaluator = evaluator
        self.max_workers = max_workers
        self._clock = clock

    def evaluate_single(
        self, candidate: CandidateText, cancel_event: Optional[threading.Event] = None
    ) -> EvaluationRecord:
        """Résumé-only review; no ranking, no label."""
        LOGGER.info("Evaluating resume %s", candidate.name)
        return self.evaluator.evaluate(candidate, None, cancel_event)

    def evaluate_against(
        self,
        candidate: CandidateText,
        job: JobPosting,
        cancel_event: Optional[threading.Event] = None,
    ) -> EvaluationRecord:
        """
        Evaluate one résumé against one job without ranking.

        ``match_status`` comes from the model answer or the score threshold,
        since there is no peer to rank against.
        """
        LOGGER.info("Evaluating resume %s against %s at %s", candidate.name, job.role_name, job.company_name)
        record = self.evaluator.evaluate(candidate, job, cancel_event)
        self._apply_posting(record, job, None)
        return record

    def _evaluate_pair(
        self,
        candidate: CandidateText,
        cand_index: int,
        job: JobPosting,
        job_index: int,
        cancel_event: Optional[threading.Event],
    ) -> PairOutcome:
        if cancel_event is not None and cancel_event.is_set():
            raise EvaluationCancelled("Batch cancelled")
        try:
            record = self.evaluator.evaluate(candidate, job, cancel_event)
            record.candidate_index = cand_index
            return record
        except (UpstreamServiceError, FileProcessingError) as exc:
            LOGGER.warning("Evaluation failed for %s against job %d: %s", candidate.name, job_index + 1, exc)
            return PairError(candidate_name=candidate.name, job_index=job_index, message=str(exc))

    def evaluate_batch(
        self,
        candidates: Sequence[CandidateText],
        jobs: Sequence[JobPosting],
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchReport:
        """
        Cross-evaluate candidates and jobs and rank per job.

        Args:
            candidates: Résumés in input order (the tie-break order).
            jobs: Job postings.
            cancel_event: Optional event that abandons outstanding pairs.

        Returns:
            BatchReport with one JobReport per job and overall statistics.

        Raises:
            ValidationError: Empty inputs or invalid résumé/job text.
            EvaluationCancelled: ``cancel_event`` was set before completion.
        """
        if not candidates:
            raise ValidationError("At least one resume is required")
        if not jobs:
            raise ValidationError("At least one job description is required")

        total = len(candidates) * len(jobs)
        LOGGER.info("Evaluating %d resumes against %d jobs (%d pairs)", len(candidates), len(jobs), total)

        outcomes: Dict[Tuple[int, int], PairOutcome] = {}
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="evaluate")
        try:
            futures = {
                executor.submit(
                    self._evaluate_pair, candidate, cand_index, job, job_index, cancel_event
                ): (cand_index, job_index)
                for job_index, job in enumerate(jobs)
                for cand_index, candidate in enumerate(candidates)
            }
            for done, future in enumerate(as_completed(futures), start=1):
                cand_index, job_index = futures[future]
                outcomes[(cand_index, job_index)] = future.result()
                LOGGER.info(
                    "Evaluated pair %d/%d: %s vs job %d",
                    done,
                    total,
                    candidates[cand_index].name,
                    job_index + 1,
                )
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        job_reports = [
            self._rank_job(
                job_index,
                job,
                [outcomes[(cand_index, job_index)] for cand_index in range(len(candidates))],
            )
            for job_index, job in enumerate(jobs)
        ]

        winners = [report.report.best_match for report in job_reports if report.report.best_match is not None]
        ranked_winners = sorted(winners, key=lambda record: record.ats_score, reverse=True)
        total_unmatched = sum(len(report.report.other_matches) for report in job_reports)
        batch = BatchReport(
            jobs=job_reports,
            overall=_match_report(ranked_winners, ranked_winners),
            total_candidates=len(candidates),
            total_jobs=len(jobs),
            total_matched=len(winners),
            total_unmatched=total_unmatched,
        )
        LOGGER.info(
            "Batch complete: %d matched, %d unmatched, %d failed pairs",
            batch.total_matched,
            batch.total_unmatched,
            sum(len(report.errors) for report in job_reports),
        )
        return batch

    def _rank_job(self, job_index: int, job: JobPosting, outcomes: List[PairOutcome]) -> JobReport:
        records = [outcome for outcome in outcomes if isinstance(outcome, EvaluationRecord)]
        errors = [outcome for outcome in outcomes if isinstance(outcome, PairError)]
        for record in records:
            self._apply_posting(record, job, job_index)

        # sorted() is stable with reverse=True, so ties keep input order
        ranked = sorted(records, key=lambda record: record.ats_score, reverse=True)
        for record in ranked[1:]:
            record.match_status = MatchStatus.UNMATCHED
            record.new_candidate_label = None
        if ranked:
            best = ranked[0]
            best.match_status = MatchStatus.MATCHED
            best.new_candidate_label = build_candidate_label(
                best.display_name, best.company_name, best.role_name, self._clock
            )
            LOGGER.info(
                "Job %d (%s at %s): best match %s with score %.1f",
                job_index + 1,
                best.role_name,
                best.company_name,
                best.candidate_name,
                best.ats_score,
            )
        else:
            LOGGER.warning("Job %d has no successful evaluations", job_index + 1)

        return JobReport(
            job_index=job_index,
            posting=job,
            report=_match_report(ranked, ranked[:1]),
            errors=errors,
            all_scores=format_all_scores(ranked, errors),
        )

    @staticmethod
    def _apply_posting(record: EvaluationRecord, job: JobPosting, job_index: Optional[int]) -> None:
        """Sheet-provided company and role take precedence over model-extracted ones."""
        record.job_index = job_index
        if job.company_name:
            record.company_name = job.company_name
        if job.role_name:
            record.role_name = job.role_name
