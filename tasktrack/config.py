from pathlib import Path
import os

from dotenv import load_dotenv

# Load environment variables from the project root .env (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


DATABASE_URL = os.getenv("TASKTRACK_DATABASE_URL", "sqlite:///./data/taskmanager.db")

# Time tracking ships disabled; the routes stay mounted and answer 404.
ENABLE_TIME_TRACKING = _env_bool("TASKTRACK_ENABLE_TIME_TRACKING", False)

LOG_LEVEL = os.getenv("TASKTRACK_LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("TASKTRACK_LOG_DIR", "")

HOST = os.getenv("TASKTRACK_HOST", "127.0.0.1")
PORT = int(os.getenv("TASKTRACK_PORT", "3000"))
RELOAD = _env_bool("TASKTRACK_RELOAD", False)

STATIC_DIR = Path(__file__).resolve().parent / "static"

_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]
