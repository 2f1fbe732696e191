import logging
from typing import TYPE_CHECKING

import redis
from flask import Flask
from flask_socketio import SocketIO
from prometheus_client import make_wsgi_app
from werkzeug.middleware.dispatcher import DispatcherMiddleware
from znsocket import MemoryStorage

from focushive.exceptions import FocusHiveError

if TYPE_CHECKING:
    from focushive.config import FocusHiveConfig

log = logging.getLogger(__name__)

socketio = SocketIO(cors_allowed_origins="*")


def redis_init_app(app: Flask, redis_url: str | None) -> redis.Redis | MemoryStorage:
    if redis_url is None:
        r = MemoryStorage()
        app.extensions["redis"] = r
    else:
        r = redis.Redis.from_url(redis_url, decode_responses=True)
        app.extensions["redis"] = r
    return r


def services_init_app(app: Flask) -> None:
    """Initialize service layer with Redis client.

    Services provide domain logic abstraction over Redis operations.
    Must be called after redis_init_app.
    """
    from focushive.app.broadcast import (
        BroadcastGateway,
        RedisRelayTransport,
        SocketIOTransport,
    )
    from focushive.app.sweeper import RoomSweeper
    from focushive.services import (
        InMemoryPresenceTracker,
        RoomLifecycleManager,
        RoomRegistry,
    )

    config = app.extensions["config"]
    redis_client = app.extensions["redis"]

    transports = [SocketIOTransport(socketio)]
    if config.relay_active:
        transports.append(RedisRelayTransport(redis_client))
    gateway = BroadcastGateway(
        transports,
        dedup_window=config.dedup_window_seconds,
        timeout=config.broadcast_timeout_seconds,
    )

    app.extensions["room_registry"] = RoomRegistry(redis_client)
    app.extensions["presence"] = InMemoryPresenceTracker()
    app.extensions["broadcast"] = gateway
    app.extensions["room_lifecycle"] = RoomLifecycleManager(
        app.extensions["room_registry"],
        app.extensions["presence"],
        gateway,
        config,
    )
    # Started by the CLI and WSGI entry points.
    app.extensions["room_sweeper"] = RoomSweeper(
        app.extensions["room_lifecycle"], config.sweep_interval_seconds
    )


def errors_init_app(app: Flask) -> None:
    @app.errorhandler(FocusHiveError)
    def handle_focushive_error(e: FocusHiveError):
        return e.to_dict(), e.status_code


def _cors_origins(value: str) -> str | list[str]:
    if value.strip() == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def create_app(
    config: "FocusHiveConfig | None" = None,
    redis_url: str | None = None,
) -> Flask:
    """Create and configure Flask application.

    Parameters
    ----------
    config : FocusHiveConfig | None
        Configuration object. If None, loads from environment via get_config().
    redis_url : str | None
        Override Redis URL.

    Returns
    -------
    Flask
        Configured Flask application instance.
    """
    from focushive.config import get_config as _get_config

    # Load config from environment if not provided
    if config is None:
        config = _get_config()

    if redis_url is not None:
        config.redis_url = redis_url

    # Configure logging from config
    log_level = getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    log.info(f"Logging configured at level: {config.log_level}")

    app = Flask(__name__)

    # Store config object in extensions for direct access
    app.extensions["config"] = config
    app.config["SECRET_KEY"] = config.secret_key

    from focushive.app import rooms, utility

    app.register_blueprint(utility)
    app.register_blueprint(rooms)

    app.config.from_prefixed_env("FOCUSHIVE_FLASK")
    redis_init_app(app, config.redis_url)
    services_init_app(app)
    errors_init_app(app)

    cors = _cors_origins(config.cors_allowed_origins)
    # Message queue relays emits from other processes; room locks and presence
    # are held per process, so serve from a single worker.
    if config.redis_url:
        log.info(f"Configuring SocketIO with Redis message queue: {config.redis_url}")
        socketio.init_app(app, message_queue=config.redis_url, cors_allowed_origins=cors)
    else:
        log.info("Configuring SocketIO without message queue (single worker mode)")
        socketio.init_app(app, cors_allowed_origins=cors)

    app.wsgi_app = DispatcherMiddleware(app.wsgi_app, {"/metrics": make_wsgi_app()})
    log.info("Prometheus metrics endpoint enabled at /metrics")

    return app
