from typing import Protocol

from ..config import Settings
from ..models.schemas import AnalysisRecord


class AnalysisService(Protocol):
    async def analyze_resume(self, job_description: str, resume_text: str) -> AnalysisRecord:
        ...


def get_analysis_service(settings: Settings) -> AnalysisService:
    """Build the analysis client for the configured provider.

    Raises ConfigurationError when the provider's API key is missing.
    """
    if settings.provider == "openai":
        from .openai_service import ChatGPTService
        return ChatGPTService(settings)
    from .gemini_service import GeminiService
    return GeminiService(settings)
