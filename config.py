"""Configuration for the Spreadsheet Combiner API."""

import os
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (or a .env file)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # API Settings
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    RELOAD: bool = False

    # Storage paths, relative ones are resolved against BASE_DIR
    BASE_DIR: str = os.path.dirname(os.path.abspath(__file__))
    UPLOAD_DIR: str = "uploads"
    EXPORT_DIR: str = "exports"
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # Upload limits
    MAX_FILE_SIZE: int = 100 * 1024 * 1024  # 100MB
    MAX_FILES: int = 10
    ALLOWED_TYPES: List[str] = [
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
        "application/vnd.ms-excel",  # .xls
        "text/csv",
        "text/plain",  # .txt holding delimited text
    ]
    ALLOWED_EXTENSIONS: List[str] = [".xlsx", ".xls", ".csv", ".txt"]

    # Processing thresholds, advisory only: exceeding them logs a warning
    MAX_ROWS: int = 1_000_000
    MAX_COLUMNS: int = 100
    PROCESSING_TIMEOUT: int = 30  # seconds, not enforced

    SAMPLE_ROWS: int = 20
    UPLOAD_SAMPLE_ROWS: int = 5
    EXAMPLE_COUNT: int = 3
    PREVIEW_DEFAULT_LIMIT: int = 10

    CSV_ENCODING: str = "utf-8-sig"
    EXPORT_URL_PREFIX: str = "/exports"

    def resolve_dir(self, path: str) -> str:
        """Return an absolute directory path, creating it if needed."""
        if not os.path.isabs(path):
            path = os.path.join(self.BASE_DIR, path)
        os.makedirs(path, exist_ok=True)
        return path

    @property
    def upload_path(self) -> str:
        return self.resolve_dir(self.UPLOAD_DIR)

    @property
    def export_path(self) -> str:
        return self.resolve_dir(self.EXPORT_DIR)

    @property
    def log_path(self) -> str:
        return self.resolve_dir(self.LOG_DIR)


settings = Settings()
