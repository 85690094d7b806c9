"""
Gunicorn configuration for the intranet portal.

Booking writes are serialized by in-process locks, so the portal runs as a
single worker process with several threads. All settings come from the
environment for container deployment.

    gunicorn -c deploy/gunicorn.conf.py intranet.wsgi:app
"""

from __future__ import annotations

import logging
import os

# ===== Server Binding =====
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
backlog = int(os.environ.get("GUNICORN_BACKLOG", "512"))

# ===== Worker Settings =====
# One process; room and booking locks live in its memory.
worker_class = "gthread"
workers = 1
threads = int(os.environ.get("GUNICORN_THREADS", "8"))
max_requests = int(os.environ.get("GUNICORN_MAX_REQUESTS", "0"))
worker_tmp_dir = os.environ.get("GUNICORN_WORKER_TMP_DIR", "/dev/shm")

# ===== Timeouts =====
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.environ.get("GUNICORN_KEEPALIVE", "5"))

# ===== Logging =====
accesslog = os.environ.get("GUNICORN_ACCESSLOG", "-")
errorlog = os.environ.get("GUNICORN_ERRORLOG", "-")
loglevel = os.environ.get("GUNICORN_LOGLEVEL", "info")
capture_output = True
access_log_format = os.environ.get(
    "GUNICORN_ACCESS_LOG_FORMAT",
    '{"timestamp": "%(t)s", "remote": "%(h)s", "request": "%(r)s", '
    '"status": %(s)s, "bytes": %(b)s, "response_time": %(D)s}',
)

# ===== Request Limits =====
limit_request_line = int(os.environ.get("GUNICORN_LIMIT_REQUEST_LINE", "8190"))
limit_request_fields = int(os.environ.get("GUNICORN_LIMIT_REQUEST_FIELDS", "100"))
forwarded_allow_ips = os.environ.get("GUNICORN_FORWARDED_ALLOW_IPS", "127.0.0.1")

proc_name = os.environ.get("GUNICORN_PROC_NAME", "intranet-portal")
preload_app = False


def on_starting(server):
    logging.getLogger(__name__).info("Portal starting: threads=%s, timeout=%ss", threads, timeout)


def when_ready(server):
    logging.getLogger(__name__).info("Portal ready on %s", bind)


def worker_abort(worker):
    logging.getLogger(__name__).warning("Worker %s timed out (>%ss), aborting", worker.pid, timeout)
