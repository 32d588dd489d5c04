import os


def _split_origins(raw: str) -> list[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # Server
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", "10000"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # CORS
    CORS_ORIGINS = _split_origins(
        os.environ.get("CORS_ORIGINS", "http://localhost:5173,https://science.mom")
    )

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Rooms
    DEFAULT_ROOM_ID = os.environ.get("DEFAULT_ROOM_ID", "default-game")

    # Game timer
    DEFAULT_TIMER_LENGTH = int(os.environ.get("DEFAULT_TIMER_LENGTH", "10"))
    DEFAULT_REVEAL_AT = int(os.environ.get("DEFAULT_REVEAL_AT", "3"))
    TICK_INTERVAL_SEC = float(os.environ.get("TICK_INTERVAL_SEC", "1.0"))
    ENABLE_TIMER_TASKS = os.environ.get("ENABLE_TIMER_TASKS", "1") == "1"
