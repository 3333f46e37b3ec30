import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _database_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    # Hosted Postgres URLs often use the legacy scheme SQLAlchemy rejects.
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    DATABASE_URL = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "auto")
    MISTRAL_API_KEY = os.getenv("MISTRAL_API_KEY", "")
    MISTRAL_MODEL = os.getenv("MISTRAL_MODEL", "mistral-large-latest")
    MISTRAL_BASE_URL = os.getenv("MISTRAL_BASE_URL", "https://api.mistral.ai")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
    LLM_REQUIRED_FOR_INTERVIEW = _env_bool("LLM_REQUIRED_FOR_INTERVIEW", True)

    INTERVIEW_TOTAL_QUESTIONS = int(os.getenv("INTERVIEW_TOTAL_QUESTIONS", "6"))
    PASSING_SCORE = float(os.getenv("PASSING_SCORE", "6"))
    DEFAULT_TASK_XP = int(os.getenv("DEFAULT_TASK_XP", "10"))
    HEATMAP_DAYS = int(os.getenv("HEATMAP_DAYS", "365"))
    ACTIVITY_TIMEZONE = os.getenv("ACTIVITY_TIMEZONE", "UTC")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
