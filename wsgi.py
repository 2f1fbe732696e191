"""WSGI entry point for production deployment with Gunicorn.

This module creates the Flask application instance for Gunicorn.
Configuration is read from FOCUSHIVE_* environment variables, e.g.:
- FOCUSHIVE_REDIS_URL: Redis URL for room state and the relay (default: None)
- FOCUSHIVE_SECRET_KEY: Secret used to sign session tokens
"""

from focushive.server import create_app, socketio

app = create_app()
app.extensions["room_sweeper"].start()

# Export both app and socketio for Gunicorn
# Gunicorn will use the 'app' object
__all__ = ["app", "socketio"]
