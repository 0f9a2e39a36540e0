from typing import Any, Dict

SYSTEM_PROMPT = "You are an expert, impartial HR analyst. Return only valid JSON that matches the schema."


def _string(description: str) -> Dict[str, Any]:
    return {"type": "STRING", "description": description}


def _number(description: str) -> Dict[str, Any]:
    return {"type": "NUMBER", "description": description}


def _string_list(description: str) -> Dict[str, Any]:
    return {"type": "ARRAY", "items": {"type": "STRING"}, "description": description}


SCORE_EXPLANATIONS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "description": "One sentence per score explaining why it was given.",
    "properties": {
        "overall": _string("Why the overall fit score was given."),
        "skillMatch": _string("Why the skill match score was given."),
        "experienceRelevance": _string("Why the experience relevance score was given."),
        "educationFit": _string("Why the education fit score was given."),
        "softSkills": _string("Why the soft skills score was given."),
        "technicalSkills": _string("Why the technical skills score was given."),
    },
    "required": [
        "overall",
        "skillMatch",
        "experienceRelevance",
        "educationFit",
        "softSkills",
        "technicalSkills",
    ],
}

ANALYSIS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "candidateName": _string("The full name of the candidate, or 'Unknown Candidate'."),
        "currentTitle": _string("The candidate's current or most recent job title."),
        "location": _string("The candidate's location as stated on the resume, or 'Not specified'."),
        "yearsOfExperience": _number("Total years of relevant professional experience."),
        "overallScore": _number("0-100: how well the candidate fits the role overall."),
        "skillMatchScore": _number("0-100: how well the candidate's skills match the required skills."),
        "experienceRelevanceScore": _number("0-100: how relevant past roles and projects are to this role."),
        "educationFitScore": _number("0-100: how well education and certifications fit the role."),
        "softSkillsScore": _number("0-100: evidence of communication, leadership and collaboration."),
        "technicalSkillsScore": _number("0-100: depth of the technical skills the role requires."),
        "summary": _string("A 2-3 sentence summary of the candidate's profile and suitability."),
        "strengths": _string_list("Key strengths of the candidate for this role."),
        "gaps": _string_list("Missing qualifications or weaker areas relative to the job description."),
        "topSkills": _string_list("The candidate's 3-6 most relevant skills for this role."),
        "standoutSkills": _string_list(
            "1-3 unique skills or experiences not required by the job description but valuable for the role."
        ),
        "suggestedQuestions": _string_list("Insightful interview questions based on the resume and job description."),
        "scoreExplanations": SCORE_EXPLANATIONS_SCHEMA,
        "rankingJustification": _string("One sentence justifying where this candidate should rank."),
    },
    "required": [
        "candidateName",
        "currentTitle",
        "location",
        "yearsOfExperience",
        "overallScore",
        "skillMatchScore",
        "experienceRelevanceScore",
        "educationFitScore",
        "softSkillsScore",
        "technicalSkillsScore",
        "summary",
        "strengths",
        "gaps",
        "topSkills",
        "standoutSkills",
        "suggestedQuestions",
        "scoreExplanations",
        "rankingJustification",
    ],
}

ANALYSIS_PROMPT = """
You are an expert HR assistant. Analyze the resume below against the job description and return a structured JSON analysis.
Do not include any introductory text, markdown formatting, or backticks in your response.

Job Description:
---
{job_description}
---

Resume Content:
---
{resume_text}
---

SCORING RULES
-------------
- Every score is a number from 0 to 100.
- Score on job-relevant evidence only. Do NOT let name, gender, age, ethnicity, nationality, religion,
  marital status, photos or any other identity-revealing signal influence any score.
- Match contextually, not by keywords alone: equivalent technologies, transferable experience and
  demonstrated outcomes count even when the exact wording differs from the job description.
- Identify standout skills or experiences that are not in the job description but would be a major asset.
- Give one sentence per score in scoreExplanations and one sentence in rankingJustification.

Provide a JSON object that strictly follows the defined schema.
"""


def _truncate_text(text: str, max_chars: int) -> str:
    if not text:
        return ""
    text = text.strip()
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + "\n...[truncated]"


def build_analysis_prompt(job_description: str, resume_text: str, max_jd_chars: int, max_resume_chars: int) -> str:
    return ANALYSIS_PROMPT.format(
        job_description=_truncate_text(job_description, max_jd_chars),
        resume_text=_truncate_text(resume_text, max_resume_chars),
    )


def to_json_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Convert the Gemini-style schema to lower-case JSON Schema for OpenAI strict mode."""
    out: Dict[str, Any] = {"type": schema["type"].lower()}
    if "description" in schema:
        out["description"] = schema["description"]
    if "items" in schema:
        out["items"] = to_json_schema(schema["items"])
    if "properties" in schema:
        out["properties"] = {k: to_json_schema(v) for k, v in schema["properties"].items()}
        out["required"] = list(schema["required"])
        out["additionalProperties"] = False
    return out
