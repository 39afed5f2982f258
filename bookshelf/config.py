"""Configuration management."""
import os
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration.

    Values are read from the environment (and a ``.env`` file) when the
    module is imported. Instances can override any attribute, which is
    how the tests build apps with a different backend.
    """

    # Persistence: "memory" or "supabase"
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_ANON_KEY", "")
    BOOKS_TABLE = os.getenv("BOOKS_TABLE", "books")

    # Owner of the books. Empty leaves books unscoped; with Supabase the
    # service can sign in as a user instead.
    USER_ID = os.getenv("USER_ID", "")
    SUPABASE_EMAIL = os.getenv("SUPABASE_EMAIL", "")
    SUPABASE_PASSWORD = os.getenv("SUPABASE_PASSWORD", "")

    # Cover images
    COVER_BUCKET = os.getenv("COVER_BUCKET", "book-covers")
    COVER_DIR = os.getenv("COVER_DIR", "data/covers")
    MAX_COVER_BYTES = int(os.getenv("MAX_COVER_BYTES", str(5 * 1024 * 1024)))

    # AI
    LLM_MODEL_NAME = os.getenv("LLM_MODEL_NAME", "google/flan-t5-base")
    EMBEDDING_MODEL_NAME = os.getenv(
        "EMBEDDING_MODEL_NAME", "sentence-transformers/all-MiniLM-L6-v2"
    )
    RECOMMENDATION_COUNT = int(os.getenv("RECOMMENDATION_COUNT", "4"))

    # Server
    HOST = os.getenv("HOST", "127.0.0.1")
    PORT = int(os.getenv("PORT", "3001"))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @property
    def cors_origins(self) -> List[str]:
        """Comma separated ``CORS_ORIGINS`` as a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
