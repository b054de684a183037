from __future__ import annotations

import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.prompts import load_prompts
from .game.registry import RoomRegistry
from .game.service import GameService
from .game.timers import SocketIOScheduler
from .judging.adapter import JudgingAdapter, build_judge
from .realtime.handlers import register_socketio_handlers
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp


def _pick_async_mode(configured: str) -> str:
    if configured:
        return configured
    # Default choice:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(
    config_class: type = Config,
    judge: JudgingAdapter | None = None,
    scheduler: SocketIOScheduler | None = None,
) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_pick_async_mode(app.config.get("SOCKETIO_ASYNC_MODE", "")),
    )

    service = GameService(
        registry=RoomRegistry(code_length=app.config.get("ROOM_CODE_LENGTH", 4)),
        scheduler=scheduler or SocketIOScheduler(socketio),
        judge=judge or build_judge(config_class),
        emit=socketio.emit,
        prompts=load_prompts(app.config.get("PROMPTS_FILE")),
        grace_period_ms=app.config.get("GRACE_PERIOD_MS", 1500),
        default_draw_time_ms=app.config.get("DRAW_TIME_MS", 30_000),
        default_total_rounds=app.config.get("TOTAL_ROUNDS", 3),
    )
    app.extensions["drawbattle"] = service

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(socketio, service)

    return app, socketio
