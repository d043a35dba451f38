# editorial/app/settings.py
from __future__ import annotations

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# .env values never override variables already set in the environment
load_dotenv(find_dotenv(usecwd=True), override=False)

ROOT_DIR = Path(__file__).resolve().parents[2]

# --- storage ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./editorial.db")
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

# --- language model ---
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_API_BASE = os.getenv("OPENAI_API_BASE") or None
KEYWORD_MODEL = os.getenv("KEYWORD_MODEL") or None  # overrides config/keywords.yaml
DEFAULT_KEYWORD_MODEL = "gpt-4o-mini"
KEYWORDS_CONFIG = os.getenv("KEYWORDS_CONFIG", str(ROOT_DIR / "config" / "keywords.yaml"))

# --- external call budgets (seconds) ---
LLM_CONNECT_TIMEOUT = float(os.getenv("LLM_CONNECT_TIMEOUT", "15"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "40"))
SCRAPE_TIMEOUT = float(os.getenv("SCRAPE_TIMEOUT", "40"))

# --- api ---
EDITORIAL_USERNAME = os.getenv("EDITORIAL_USERNAME", "")
EDITORIAL_PASSWORD = os.getenv("EDITORIAL_PASSWORD", "")
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]

# --- domain limits ---
MAX_COMMENT_BYTES = 4000
MAX_KEYWORDS_PER_SOURCE = 200
MAX_RESULTS = 1000
MAX_USER_NAME = 255
WORKING_SOURCES_LIMIT = int(os.getenv("WORKING_SOURCES_LIMIT", "20"))
