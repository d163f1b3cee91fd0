"""
Shared data models used across the application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class EvaluationMode(str, Enum):
    """Which prompt family produced a record."""

    RESUME_ONLY = "resume_only"
    JOB_MATCH = "job_match"


class MatchStatus(str, Enum):
    MATCHED = "MATCHED"
    UNMATCHED = "UNMATCHED"


def _none_list() -> List[str]:
    return ["None"]


@dataclass
class SkillBlock:
    """Matched skills and gaps for one résumé section (work, certificates, ...)."""

    matched_skills: List[str] = field(default_factory=_none_list)
    gaps: List[str] = field(default_factory=_none_list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"matchedSkills": list(self.matched_skills), "gaps": list(self.gaps)}


@dataclass
class EvaluationRecord:
    """Structured result of parsing one model answer."""

    mode: EvaluationMode = EvaluationMode.RESUME_ONLY
    career_summary: str = "Career summary not found"
    ats_score: float = 5.0
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    work_experience: SkillBlock = field(default_factory=SkillBlock)
    certificates: SkillBlock = field(default_factory=SkillBlock)
    projects: SkillBlock = field(default_factory=SkillBlock)
    technical_skills: SkillBlock = field(default_factory=SkillBlock)
    company_name: Optional[str] = None
    role_name: Optional[str] = None
    match_status: Optional[MatchStatus] = None
    new_candidate_label: Optional[str] = None
    display_name: str = "Resume"
    candidate_name: str = ""
    job_index: Optional[int] = None
    # Position of the résumé in the batch input; not part of the report
    candidate_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the camelCase shape used in JSON reports."""
        payload: Dict[str, Any] = {
            "candidateName": self.candidate_name,
            "displayName": self.display_name,
            "careerSummary": self.career_summary,
            "atsScore": self.ats_score,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "suggestions": list(self.suggestions),
            "workExperience": self.work_experience.to_dict(),
            "certificates": self.certificates.to_dict(),
            "projects": self.projects.to_dict(),
            "technicalSkills": self.technical_skills.to_dict(),
        }
        if self.mode is EvaluationMode.JOB_MATCH:
            payload["companyName"] = self.company_name
            payload["roleName"] = self.role_name
            payload["matchStatus"] = self.match_status.value if self.match_status else None
        if self.new_candidate_label:
            payload["newCandidateLabel"] = self.new_candidate_label
        if self.job_index is not None:
            payload["jobIndex"] = self.job_index
        return payload


@dataclass
class JobPosting:
    """One job extracted from a sheet or given on the command line."""

    description: str
    company_name: str = ""
    role_name: str = ""
    apply_link: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "companyName": self.company_name,
            "roleName": self.role_name,
            "description": self.description,
            "applyLink": self.apply_link,
        }


@dataclass
class CandidateText:
    """Extracted plain text of one résumé."""

    name: str
    text: str
    source_path: Optional[Path] = None


@dataclass
class PairError:
    """A (candidate, job) pair whose evaluation failed upstream."""

    candidate_name: str
    job_index: Optional[int]
    message: str
    ats_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidateName": self.candidate_name,
            "jobIndex": self.job_index,
            "error": self.message,
            "atsScore": self.ats_score,
        }


@dataclass
class MatchReport:
    """Best match plus statistics over the matched entries."""

    best_match: Optional[EvaluationRecord] = None
    other_matches: List[EvaluationRecord] = field(default_factory=list)
    average_score: float = 0.0
    highest_score: float = 0.0
    lowest_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bestMatch": self.best_match.to_dict() if self.best_match else None,
            "otherMatches": [record.to_dict() for record in self.other_matches],
            "averageScore": self.average_score,
            "highestScore": self.highest_score,
            "lowestScore": self.lowest_score,
        }


@dataclass
class JobReport:
    """Ranking outcome for a single job posting."""

    job_index: int
    posting: JobPosting
    report: MatchReport
    errors: List[PairError] = field(default_factory=list)
    all_scores: str = ""
    insights: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "jobIndex": self.job_index,
            "posting": self.posting.to_dict(),
            "report": self.report.to_dict(),
            "errors": [error.to_dict() for error in self.errors],
            "allScores": self.all_scores,
        }
        if self.insights:
            payload["insights"] = dict(self.insights)
        return payload


@dataclass
class BatchReport:
    """Result of a full candidates x jobs cross evaluation."""

    jobs: List[JobReport]
    overall: MatchReport
    total_candidates: int
    total_jobs: int
    total_matched: int
    total_unmatched: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCandidates": self.total_candidates,
            "totalJobs": self.total_jobs,
            "totalMatched": self.total_matched,
            "totalUnmatched": self.total_unmatched,
            "overall": self.overall.to_dict(),
            "jobs": [job.to_dict() for job in self.jobs],
        }
