import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")

# LLM configuration (prescription OCR)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "auto")
LLM_DEFAULT_TIER = os.getenv("LLM_DEFAULT_TIER", "fast")
LLM_MODEL_FAST = os.getenv("LLM_MODEL_FAST", "")
LLM_MODEL_STANDARD = os.getenv("LLM_MODEL_STANDARD", "")
LLM_MODEL_HIGH = os.getenv("LLM_MODEL_HIGH", "")

DATABASE_PATH = os.getenv("DATABASE_PATH", "carevault.db")

DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_MAX_CONNECTIONS = int(os.getenv("DATABASE_MAX_CONNECTIONS", "5"))
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "true").lower() == "true"

BASE_DIR = Path(__file__).resolve().parent

# Emergency access tokens
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "30"))
ACCESS_TOKEN_MAX_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_MAX_TTL_MINUTES", str(24 * 60)))
DOCTOR_ACCESS_PATH = os.getenv("DOCTOR_ACCESS_PATH", "/doctor-access")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")

# Drug safety knowledge tables (empty = built-in tables)
DRUG_KNOWLEDGE_BASE_PATH = os.getenv("DRUG_KNOWLEDGE_BASE_PATH", "")

# Prescription drift windows
RECENT_HISTORY_DAYS = int(os.getenv("RECENT_HISTORY_DAYS", "30"))
PRESCRIPTION_REVIEW_MONTHS = int(os.getenv("PRESCRIPTION_REVIEW_MONTHS", "6"))
TIMING_GAP_MEDICATION_THRESHOLD = int(os.getenv("TIMING_GAP_MEDICATION_THRESHOLD", "3"))

# Simulated wearable playback
WEARABLE_DEMO_DATA_PATH = os.getenv(
    "WEARABLE_DEMO_DATA_PATH",
    str(BASE_DIR / "data" / "wearable_vitals.csv"),
)
