import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'shelfmark.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    METADATA_FETCH_ENABLED = os.environ.get("METADATA_FETCH_ENABLED", "1") == "1"
    METADATA_FETCH_TIMEOUT = float(os.environ.get("METADATA_FETCH_TIMEOUT", "10"))
    METADATA_MAX_BYTES = int(os.environ.get("METADATA_MAX_BYTES", "1000000"))
    BOOKMARKS_PAGE_SIZE = int(os.environ.get("BOOKMARKS_PAGE_SIZE", "20"))
    BOOKMARKS_MAX_PAGE_SIZE = int(os.environ.get("BOOKMARKS_MAX_PAGE_SIZE", "100"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    METADATA_FETCH_ENABLED = False
