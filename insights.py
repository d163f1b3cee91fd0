"""
Optional model-generated extras shown next to each job in reports.
"""

from __future__ import annotations

import logging
import re
from typing import List

from data_models import EvaluationRecord
from errors import UpstreamServiceError
from prompts import build_improvement_prompt, build_job_summary_prompt

LOGGER = logging.getLogger(__name__)

SUMMARY_WORD_LIMIT = 100
SUMMARY_FALLBACK_CHARS = 200
SUGGESTIONS_MAX_CHARS = 2000
IMPROVEMENT_HEADER = "TO IMPROVE MATCH SCORE"


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def summarize_job_description(client, description: str) -> str:
    """
    Ask the service for a ~100 word summary of a job description.

    Falls back to the first 197 characters of the description when the
    service fails.
    """
    if not description or not description.strip():
        return "No job description provided"
    try:
        answer = client.invoke(build_job_summary_prompt(description))
    except UpstreamServiceError as exc:
        LOGGER.warning("Job summary generation failed: %s", exc)
        return _truncate(description.strip(), SUMMARY_FALLBACK_CHARS)

    summary = re.sub(
        r"^(Here is a summary:|In summary:|Summary:)\s*", "", answer.strip(), flags=re.IGNORECASE
    )
    summary = re.sub(r"\n\s*\n+", "\n", summary)
    words = summary.split()
    if len(words) > SUMMARY_WORD_LIMIT:
        summary = " ".join(words[:SUMMARY_WORD_LIMIT])
    if summary and summary[-1] not in ".!?":
        summary += "."
    return summary[:1].upper() + summary[1:]


def _analysis_lines(record: EvaluationRecord) -> List[str]:
    lines = []
    if record.strengths:
        lines.append("Strengths: " + ", ".join(record.strengths))
    if record.work_experience.matched_skills != ["None"]:
        lines.append("Work Experience Skills: " + ", ".join(record.work_experience.matched_skills))
    if record.technical_skills.matched_skills != ["None"]:
        lines.append("Technical Skills: " + ", ".join(record.technical_skills.matched_skills))
    if record.work_experience.gaps != ["None"]:
        lines.append("Identified Gaps: " + ", ".join(record.work_experience.gaps))
    return lines


def suggest_improvements(client, description: str, record: EvaluationRecord) -> str:
    """
    Ask the service how the best candidate could raise their score.

    Args:
        client: Generative client.
        description: Job description text.
        record: The job's best match.

    Returns:
        Suggestion text headed with the current score, at most 2000 chars.
    """
    header = f"{IMPROVEMENT_HEADER} (Current: {record.ats_score:.1f}/10):\n=====================================\n\n"
    prompt = build_improvement_prompt(description, record.ats_score, _analysis_lines(record))
    try:
        answer = client.invoke(prompt)
    except UpstreamServiceError as exc:
        LOGGER.warning("Improvement suggestion generation failed: %s", exc)
        return "Error generating suggestions"

    suggestions = re.sub(
        r"^(Here are the suggestions:|Improvement suggestions:|Suggestions:)\s*",
        "",
        answer.strip(),
        flags=re.IGNORECASE,
    )
    if not suggestions.startswith(IMPROVEMENT_HEADER):
        suggestions = header + suggestions
    return _truncate(suggestions, SUGGESTIONS_MAX_CHARS)
