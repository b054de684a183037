import os
from pathlib import Path


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Empty means auto-detect (see server.create_app)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # AI judge
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
    JUDGE_TIMEOUT_SEC = int(os.environ.get("JUDGE_TIMEOUT_SEC", "30"))

    # Game
    DRAW_TIME_MS = int(os.environ.get("DRAW_TIME_MS", "30000"))
    TOTAL_ROUNDS = int(os.environ.get("TOTAL_ROUNDS", "3"))
    GRACE_PERIOD_MS = int(os.environ.get("GRACE_PERIOD_MS", "1500"))
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "4"))
    PROMPTS_FILE = os.environ.get(
        "PROMPTS_FILE",
        str(Path(__file__).resolve().parent / "data" / "prompts.json"),
    )
