import json

import pytest
from pydantic import ValidationError

from resume_ranker.conftest import analysis_payload
from resume_ranker.errors import AnalysisFailed, MalformedResponse
from resume_ranker.models.schemas import AnalysisRecord, UploadedDocument
from resume_ranker.services.prompts import ANALYSIS_RESPONSE_SCHEMA


def test_record_from_json_text():
    record = AnalysisRecord.from_response(json.dumps(analysis_payload()))
    assert record.candidate_name == "Jane Doe"
    assert record.overall_score == 80
    assert record.score_explanations.skill_match == "Most required skills are present."


def test_record_from_fenced_json():
    raw = "```json\n" + json.dumps(analysis_payload()) + "\n```"
    assert AnalysisRecord.from_response(raw).top_skills == ["Python", "Django", "AWS"]


@pytest.mark.parametrize("field,value", [
    ("overallScore", 101),
    ("skillMatchScore", -1),
    ("technicalSkillsScore", 250),
])
def test_out_of_range_score_is_rejected(field, value):
    with pytest.raises(MalformedResponse):
        AnalysisRecord.from_response(analysis_payload(**{field: value}))


def test_missing_required_field_is_rejected():
    payload = analysis_payload()
    del payload["rankingJustification"]
    with pytest.raises(MalformedResponse):
        AnalysisRecord.from_response(payload)


def test_non_json_and_non_object_are_rejected():
    with pytest.raises(MalformedResponse):
        AnalysisRecord.from_response("not json at all")
    with pytest.raises(MalformedResponse):
        AnalysisRecord.from_response("[1, 2, 3]")


def test_malformed_response_counts_as_analysis_failure():
    assert issubclass(MalformedResponse, AnalysisFailed)


def test_record_is_immutable():
    record = AnalysisRecord.from_response(analysis_payload())
    with pytest.raises(ValidationError):
        record.overall_score = 10


def test_schema_requires_every_field_the_record_declares():
    required = set(ANALYSIS_RESPONSE_SCHEMA["required"])
    aliases = {f.alias or name for name, f in AnalysisRecord.model_fields.items()}
    assert required == aliases == set(ANALYSIS_RESPONSE_SCHEMA["properties"])


def test_document_identity_and_non_empty_content():
    assert UploadedDocument.make_id("cv.pdf", 1700000000000) == "cv.pdf-1700000000000"
    with pytest.raises(ValidationError):
        UploadedDocument(id="x-0", file_name="x", data=b"", content="")
