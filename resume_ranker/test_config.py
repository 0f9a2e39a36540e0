from unittest.mock import patch

from resume_ranker.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.provider == "gemini"
    assert settings.gemini_model == "gemini-2.5-flash"
    assert settings.analysis_timeout == 120.0
    assert not settings.has_credentials


def test_from_env():
    env = {
        "RANKER_PROVIDER": "OpenAI",
        "OPENAI_API_KEY": " sk-test ",
        "OPENAI_MODEL": "gpt-4.1-mini",
        "MAX_RESUME_CHARS": "5000",
        "ANALYSIS_TIMEOUT": "30",
        "LOG_LEVEL": "debug",
    }
    with patch.dict("os.environ", env, clear=True), patch("resume_ranker.config.load_dotenv"):
        settings = Settings.from_env()
    assert settings.provider == "openai"
    assert settings.api_key == "sk-test"
    assert settings.openai_model == "gpt-4.1-mini"
    assert settings.max_resume_chars == 5000
    assert settings.analysis_timeout == 30.0
    assert settings.log_level == "DEBUG"


def test_bad_numbers_and_provider_fall_back():
    env = {"RANKER_PROVIDER": "llama", "MAX_JD_CHARS": "lots", "ANALYSIS_TIMEOUT": "soon", "API_KEY": "g-key"}
    with patch.dict("os.environ", env, clear=True), patch("resume_ranker.config.load_dotenv"):
        settings = Settings.from_env()
    assert settings.provider == "gemini"
    assert settings.max_jd_chars == 20000
    assert settings.analysis_timeout == 120.0
    assert settings.api_key == "g-key"
