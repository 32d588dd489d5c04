from __future__ import annotations

import sys
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.registry import RoomRegistry
from .game.service import RoomService
from .game.timer import TimerScheduler
from .realtime.gateway import SocketIOGateway
from .realtime.handlers import register_socketio_handlers
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp


def _default_async_mode() -> str:
    # Windows and Python >= 3.13: threading (eventlet support is shaky there).
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(config_class: type = Config) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS") or "*"
    CORS(app, resources={r"/api/*": {"origins": cors_origins}}, supports_credentials=True)

    async_mode = app.config.get("SOCKETIO_ASYNC_MODE") or _default_async_mode()

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        cors_credentials=True,
        async_mode=async_mode,
    )

    scheduler = TimerScheduler(
        socketio,
        interval=app.config.get("TICK_INTERVAL_SEC", 1.0),
        enabled=app.config.get("ENABLE_TIMER_TASKS", True),
    )
    service = RoomService(
        RoomRegistry(),
        SocketIOGateway(socketio),
        scheduler=scheduler,
        default_timer_length=app.config.get("DEFAULT_TIMER_LENGTH", 10),
        default_reveal_at=app.config.get("DEFAULT_REVEAL_AT", 3),
    )
    app.extensions["chessvote"] = service

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(
        socketio,
        service,
        default_room_id=app.config.get("DEFAULT_ROOM_ID", "default-game"),
    )

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    return app, socketio
