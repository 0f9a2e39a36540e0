import asyncio
from io import BytesIO
from typing import Any, Dict, Optional

import pytest
from docx import Document as DocxDocument

from resume_ranker.config import Settings
from resume_ranker.models.schemas import AnalysisRecord, RankedCandidate, UploadedDocument


def analysis_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "candidateName": "Jane Doe",
        "currentTitle": "Senior Python Engineer",
        "location": "Berlin, Germany",
        "yearsOfExperience": 7,
        "overallScore": 80,
        "skillMatchScore": 75,
        "experienceRelevanceScore": 70,
        "educationFitScore": 65,
        "softSkillsScore": 60,
        "technicalSkillsScore": 85,
        "summary": "Backend engineer with strong Python and cloud experience.",
        "strengths": ["Python", "AWS"],
        "gaps": ["No Kubernetes"],
        "topSkills": ["Python", "Django", "AWS"],
        "standoutSkills": ["Open-source maintainer"],
        "suggestedQuestions": ["Tell us about your largest Django project."],
        "scoreExplanations": {
            "overall": "Strong overall alignment.",
            "skillMatch": "Most required skills are present.",
            "experienceRelevance": "Relevant backend roles.",
            "educationFit": "CS degree.",
            "softSkills": "Some mentoring evidence.",
            "technicalSkills": "Deep Python expertise.",
        },
        "rankingJustification": "Ranks high thanks to deep Python experience.",
    }
    payload.update(overrides)
    return payload


def docx_bytes(*paragraphs: str) -> bytes:
    doc = DocxDocument()
    for p in paragraphs:
        doc.add_paragraph(p)
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


class FakeAnalysisService:
    """In-process stand-in for the completion service, keyed by resume text."""

    def __init__(self, outcomes: Dict[str, Any], delays: Optional[Dict[str, float]] = None):
        self.outcomes = outcomes
        self.delays = delays or {}
        self.calls = []

    async def analyze_resume(self, job_description: str, resume_text: str) -> AnalysisRecord:
        self.calls.append((job_description, resume_text))
        await asyncio.sleep(self.delays.get(resume_text, 0))
        outcome = self.outcomes[resume_text]
        if isinstance(outcome, Exception):
            raise outcome
        return AnalysisRecord.from_response(outcome)


def make_candidate(doc_id: str, **overrides: Any) -> RankedCandidate:
    doc = UploadedDocument(
        id=doc_id,
        file_name=doc_id.rsplit("-", 1)[0],
        data=b"raw",
        content=f"resume text for {doc_id}",
    )
    return RankedCandidate(document=doc, analysis=AnalysisRecord.model_validate(analysis_payload(**overrides)))


@pytest.fixture
def settings() -> Settings:
    return Settings(gemini_api_key="test-key", analysis_timeout=5)
