import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import MalformedResponse

SortKey = Literal[
    "overall_score",
    "skill_match_score",
    "experience_relevance_score",
    "education_fit_score",
    "soft_skills_score",
    "technical_skills_score",
]

SORT_KEYS = get_args(SortKey)

SORT_LABELS: Dict[SortKey, str] = {
    "overall_score": "Overall Fit",
    "skill_match_score": "Skill Match",
    "experience_relevance_score": "Experience Relevance",
    "education_fit_score": "Education Fit",
    "soft_skills_score": "Soft Skills",
    "technical_skills_score": "Technical Skills",
}

FilterMode = Literal["all", "top_picks"]
FILTER_MODES = get_args(FilterMode)


class IncomingFile(BaseModel):
    """A raw upload as handed over by the browser or the HTTP layer."""
    file_name: str
    data: bytes = Field(repr=False)
    last_modified: int = 0
    media_type: Optional[str] = None


class UploadedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    file_name: str
    last_modified: int = 0
    media_type: Optional[str] = None
    data: bytes = Field(repr=False)
    content: str = Field(repr=False, min_length=1)

    @staticmethod
    def make_id(file_name: str, last_modified: int) -> str:
        return f"{file_name}-{last_modified}"


class ScoreExplanations(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    overall: str
    skill_match: str = Field(alias="skillMatch")
    experience_relevance: str = Field(alias="experienceRelevance")
    education_fit: str = Field(alias="educationFit")
    soft_skills: str = Field(alias="softSkills")
    technical_skills: str = Field(alias="technicalSkills")


class AnalysisRecord(BaseModel):
    """Structured analysis of one resume against one job description.

    Field aliases are the wire names used in the completion schema; every
    field is required and every score must lie in [0, 100].
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    candidate_name: str = Field(alias="candidateName")
    current_title: str = Field(alias="currentTitle")
    location: str
    years_of_experience: float = Field(alias="yearsOfExperience", ge=0)

    overall_score: float = Field(alias="overallScore", ge=0, le=100)
    skill_match_score: float = Field(alias="skillMatchScore", ge=0, le=100)
    experience_relevance_score: float = Field(alias="experienceRelevanceScore", ge=0, le=100)
    education_fit_score: float = Field(alias="educationFitScore", ge=0, le=100)
    soft_skills_score: float = Field(alias="softSkillsScore", ge=0, le=100)
    technical_skills_score: float = Field(alias="technicalSkillsScore", ge=0, le=100)

    summary: str
    strengths: List[str]
    gaps: List[str]
    top_skills: List[str] = Field(alias="topSkills")
    standout_skills: List[str] = Field(alias="standoutSkills")
    suggested_questions: List[str] = Field(alias="suggestedQuestions")
    score_explanations: ScoreExplanations = Field(alias="scoreExplanations")
    ranking_justification: str = Field(alias="rankingJustification")

    @classmethod
    def from_response(cls, raw: Any) -> "AnalysisRecord":
        """Validate a completion payload (JSON text or decoded dict) into a record."""
        data = raw
        if isinstance(raw, str):
            result_text = raw
            # Clean up the response text in case the model wrapped it in a fence
            if "```json" in result_text:
                result_text = result_text.split("```json")[1].split("```")[0]
            elif "```" in result_text:
                result_text = result_text.split("```")[1].split("```")[0]
            try:
                data = json.loads(result_text.strip())
            except json.JSONDecodeError as e:
                raise MalformedResponse(f"Response is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedResponse(f"Expected a JSON object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(f"Response does not match the analysis schema: {e}") from e


class RankedCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    document: UploadedDocument
    analysis: AnalysisRecord

    @property
    def id(self) -> str:
        return self.document.id

    def score(self, key: str) -> float:
        return getattr(self.analysis, key)


@dataclass
class ExtractionReport:
    added: List[UploadedDocument] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "added": [{"id": d.id, "file_name": d.file_name} for d in self.added],
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
        }
