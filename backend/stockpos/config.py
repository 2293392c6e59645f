# backend/stockpos/config.py
from __future__ import annotations
import os
import tempfile
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
REPO_ROOT = BACKEND_DIR.parent


def _data_dir(storage_mode: str) -> str:
    explicit = os.environ.get("DATA_DIR")
    if explicit:
        return explicit
    # Serverless-style deployments only get a writable temp directory
    if storage_mode == "transient":
        return os.path.join(tempfile.gettempdir(), "stockpos")
    return str(BACKEND_DIR / "instance" / "data")


def _origins(raw: str) -> tuple[str, ...]:
    return tuple(o.strip() for o in raw.split(",") if o.strip())


class Config:
    HOST = os.environ.get("HOST", "127.0.0.1")
    PORT = int(os.environ.get("PORT", "5000"))

    # "persistent" keeps data next to the backend, "transient" uses the temp dir
    STORAGE_MODE = os.environ.get("STORAGE_MODE", "persistent").strip().lower()
    DATA_DIR = _data_dir(STORAGE_MODE)
    STATE_FILE = os.path.join(DATA_DIR, "database.json")

    # json | database | memory
    STATE_STORE = os.environ.get("STATE_STORE", "json").strip().lower()

    # Only used when STATE_STORE=database
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockpos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    PUBLIC_DIR = os.environ.get("PUBLIC_DIR", str(REPO_ROOT / "public"))
    CORS_ALLOWED_ORIGINS = _origins(os.environ.get("CORS_ALLOWED_ORIGINS", "*"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    DEFAULT_LOW_STOCK_THRESHOLD = 10
