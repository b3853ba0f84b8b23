import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    # FastAPI backend, usually started with `uvicorn app.main:app`
    API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
    RELAY_URL = os.getenv("RELAY_URL", "ws://127.0.0.1:8000/ws")
    OFFLINE_CACHE_PATH = os.getenv("OFFLINE_CACHE_PATH", "./offline_cache.json")
    LIVE_UPDATES = os.getenv("LIVE_UPDATES", "true").strip().lower() in {"1", "true", "yes", "on"}
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-change-me")
