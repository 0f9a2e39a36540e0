import logging
from typing import Optional

import google.generativeai as genai

from ..config import Settings
from ..errors import AnalysisFailed, ConfigurationError
from ..models.schemas import AnalysisRecord
from .prompts import ANALYSIS_RESPONSE_SCHEMA, SYSTEM_PROMPT, build_analysis_prompt


class GeminiService:
    def __init__(self, settings: Settings, model: Optional[object] = None):
        self.settings = settings
        self.api_key = settings.gemini_api_key
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY environment variable not set")

        if model is None:
            genai.configure(api_key=self.api_key)
            model = genai.GenerativeModel(
                settings.gemini_model,
                system_instruction=SYSTEM_PROMPT,
                generation_config=genai.GenerationConfig(
                    response_mime_type="application/json",
                    response_schema=ANALYSIS_RESPONSE_SCHEMA,
                    temperature=0.2,
                ),
            )
        self.model = model

    async def analyze_resume(self, job_description: str, resume_text: str) -> AnalysisRecord:
        """Analyze a single resume using the Gemini API"""
        prompt = build_analysis_prompt(
            job_description,
            resume_text,
            self.settings.max_jd_chars,
            self.settings.max_resume_chars,
        )
        try:
            response = await self.model.generate_content_async(prompt)
            result_text = response.text
        except Exception as e:
            logging.warning(f"Gemini analysis call failed: {e}")
            raise AnalysisFailed(str(e)) from e
        return AnalysisRecord.from_response(result_text)
