import os
from pathlib import Path

from dotenv import load_dotenv

# Explicitly load .env from project root (parent of shortlinks/)
ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / ".env")

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Tokens / credentials ---
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))

if not SECRET_KEY:
    raise RuntimeError("SECRET_KEY is not set")

# --- Server ---
PORT = int(os.getenv("PORT", 3000))
PUBLIC_BASE_URL = (os.getenv("PUBLIC_BASE_URL") or f"http://localhost:{PORT}").rstrip("/")

# --- Links ---
DEFAULT_TTL_SECONDS = int(os.getenv("DEFAULT_TTL_SECONDS", 60 * 60 * 24 * 7))
# 100 years; keeps expiresAt well inside a 64-bit column
MAX_TTL_SECONDS = int(os.getenv("MAX_TTL_SECONDS", 60 * 60 * 24 * 365 * 100))
CODE_LENGTH = int(os.getenv("CODE_LENGTH", 7))
CODE_MAX_ATTEMPTS = int(os.getenv("CODE_MAX_ATTEMPTS", 5))

# --- Storage: "json" (single document file) or "sql" (SQLAlchemy) ---
STORE_BACKEND = os.getenv("STORE_BACKEND", "json").lower()
DB_FILE = Path(os.getenv("DB_FILE", ROOT_DIR / "db.json"))
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{ROOT_DIR / 'shortlinks_dev.db'}"
