"""
Configuration settings for the review index.

Centralized configuration for storage, validation, search and the API.
Values that differ between deployments can be overridden through the
environment (or a local .env file).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent

# Data root (metadata log, vector index and lock file live here)
DATA_DIR = os.getenv("DATA_DIR", "data")

# Search backend: "text" (lexical heuristic) or "vector" (Gemini embeddings)
SEARCH_BACKEND = os.getenv("SEARCH_BACKEND", "text")

# API Configuration
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

# Embedding Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "models/text-embedding-004")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "768"))
EMBEDDING_MAX_RETRIES = 3

# Writer lock
LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "10"))
LOCK_POLL_INTERVAL_SECONDS = 0.05

# Review field limits (code points, measured after trimming)
TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
BODY_MIN_LENGTH = 10
BODY_MAX_LENGTH = 2000
PRODUCT_ID_MAX_LENGTH = 100
RATING_MIN = 1
RATING_MAX = 5

# Search
QUERY_MAX_LENGTH = 500
DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 100

# HTTP service
SERVICE_NAME = "semantic-search-backend"
SERVICE_VERSION = "0.1.0"
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "review_index.log"


# Design Rationale and Trade-offs:
#
# 1. Why environment variables with .env support?
#    - API key and data directory differ between deployments
#    - Trade-off: Typos in variable names silently fall back to defaults
#
# 2. Why validation limits as module constants?
#    - Validator, models and API read the same values
#    - Trade-off: Changing a limit needs a restart
