import logging

import typer

from focushive import __version__
from focushive.config import get_config
from focushive.server import create_app, socketio

app = typer.Typer()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"focushive {__version__}")
        raise typer.Exit()


@app.command()
def main(
    port: int | None = typer.Option(
        None,
        envvar="FOCUSHIVE_SERVER_PORT",
        help="Port to listen on (default: 5000).",
    ),
    host: str | None = typer.Option(
        None,
        envvar="FOCUSHIVE_SERVER_HOST",
        help="Interface to bind to (default: localhost).",
    ),
    redis_url: str | None = typer.Option(
        None,
        envvar="FOCUSHIVE_REDIS_URL",
        help="Redis server URL (e.g., `redis://localhost:6379`). If not provided, an in-memory storage will be used and the relay is disabled.",
    ),
    sweep: bool = typer.Option(
        True,
        "--sweep/--no-sweep",
        help="Periodically delete empty rooms and prune orphaned members.",
    ),
    debug: bool = False,
    verbose: bool = False,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    """Start the FocusHive server."""
    config = get_config()
    if port is not None:
        config.server_port = port
    if host is not None:
        config.server_host = host
    if redis_url is not None:
        config.redis_url = redis_url
    if verbose:
        config.log_level = "DEBUG"
        logging.basicConfig(level=logging.DEBUG)

    flask_app = create_app(config)
    sweeper = flask_app.extensions["room_sweeper"]
    if sweep:
        sweeper.start()

    typer.echo(
        f"Starting FocusHive server on http://{config.server_host}:{config.server_port}"
    )
    try:
        socketio.run(
            flask_app,
            host=config.server_host,
            port=config.server_port,
            debug=debug,
            allow_unsafe_werkzeug=True,
        )
    finally:
        sweeper.stop()
        flask_app.extensions["broadcast"].close()
