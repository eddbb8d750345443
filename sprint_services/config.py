# sprint_services/config.py

import os
import logging
from typing import Optional
from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
env_path = os.path.join(BASE_DIR, ".env")
load_dotenv(dotenv_path=env_path)

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

DB_PATH = os.getenv("SPRINT_DB_PATH", os.path.join("data", "sprint.db"))
AI_CACHE_DB = os.getenv("SPRINT_AI_CACHE_DB", os.path.join("data", "ai_cache.db"))

TEST_DURATION_SECONDS = int(os.getenv("SPRINT_TEST_DURATION", "300"))
LOG_LEVEL = os.getenv("SPRINT_LOG_LEVEL", "INFO")


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Cấu hình logging cho script CLI; thư viện chỉ dùng logging.getLogger(__name__)."""
    handlers = [logging.StreamHandler()]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
