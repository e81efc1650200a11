#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== DeepL ==========
    deepl_api_key: str = ""
    # Overrides the free/pro endpoint detected from the key
    deepl_api_url: Optional[str] = None
    deepl_connect_timeout: float = 30.0
    deepl_read_timeout: float = 120.0

    # ========== Database ==========
    database_dir: Path = BASE_DIR / "data"
    glossary_db_name: str = "glossary.db"

    # ========== Glossary matching ==========
    glossary_whole_word_only: bool = True

    # Prompt budget estimation (rough, provider independent)
    glossary_prompt_header_tokens: int = 20
    glossary_tokens_per_term: int = 12
    glossary_tokens_per_variant: int = 6

    # ========== Logging ==========
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    @property
    def glossary_db_path(self) -> Path:
        """Full path of the glossary SQLite database."""
        return self.database_dir / self.glossary_db_name

    def get_deepl_api_key(self) -> str:
        """Get the DeepL API key, stripped of surrounding whitespace."""
        return self.deepl_api_key.strip()


# Global settings instance
settings = Settings()
