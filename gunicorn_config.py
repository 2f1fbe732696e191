"""Gunicorn configuration for production deployment.

This configuration is for Flask-SocketIO with a Redis message queue.
Uses threaded workers with simple-websocket for WebSocket support.
"""

import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:5000")
backlog = 2048

# Worker processes
# Flask-SocketIO with threaded workers requires a SINGLE worker process.
# Room locks and the presence table live in this process.
# For horizontal scaling, deploy multiple containers behind sticky sessions.
workers = int(os.getenv("GUNICORN_WORKERS", "1"))

# Worker class - sync (threaded) for Flask-SocketIO without gevent/eventlet
worker_class = "sync"

# Threads per worker (= concurrent connections)
threads = int(os.getenv("GUNICORN_THREADS", "200"))

# Timeouts
timeout = 120
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = "-"  # Log to stdout
errorlog = "-"  # Log to stderr
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "focushive"

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None

# The sweeper thread is started in wsgi.py and must run inside the worker
preload_app = False

max_requests = 0


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("=" * 80)
    server.log.info("FocusHive Gunicorn server starting")
    server.log.info(f"Workers: {workers}, Threads per worker: {threads}")
    server.log.info(f"Worker class: {worker_class}")
    server.log.info(f"Timeout: {timeout}s")
    server.log.info("=" * 80)


def worker_int(worker):
    """Called when a worker receives the SIGINT or SIGQUIT signal."""
    worker.log.info(f"Worker received INT or QUIT signal (PID: {worker.pid})")


def worker_abort(worker):
    """Called when a worker receives the SIGABRT signal."""
    worker.log.info(f"Worker aborted (PID: {worker.pid})")
