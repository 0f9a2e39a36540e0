import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from ..config import Settings
from ..errors import AnalysisFailed, ConfigurationError
from ..models.schemas import AnalysisRecord
from .prompts import ANALYSIS_RESPONSE_SCHEMA, SYSTEM_PROMPT, build_analysis_prompt, to_json_schema


class ChatGPTService:
    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self.api_key = settings.openai_api_key
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable not set")

        self.client = client or AsyncOpenAI(api_key=self.api_key)
        self.model = settings.openai_model
        self.response_format = {
            "type": "json_schema",
            "json_schema": {
                "name": "resume_analysis",
                "strict": True,
                "schema": to_json_schema(ANALYSIS_RESPONSE_SCHEMA),
            },
        }

    async def analyze_resume(self, job_description: str, resume_text: str) -> AnalysisRecord:
        user_prompt = build_analysis_prompt(
            job_description,
            resume_text,
            self.settings.max_jd_chars,
            self.settings.max_resume_chars,
        )
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                response_format=self.response_format,
                temperature=0.2,
            )
        except OpenAIError as e:
            logging.warning(f"OpenAI analysis call failed: {e}")
            raise AnalysisFailed(str(e)) from e
        result_text = resp.choices[0].message.content if resp.choices else None
        if not result_text:
            raise AnalysisFailed("OpenAI returned an empty completion")
        return AnalysisRecord.from_response(result_text)
