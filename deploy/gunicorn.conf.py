"""Gunicorn configuration for the interview answer evaluator.

Usage:
    gunicorn main:app -c deploy/gunicorn.conf.py

The service is I/O-bound: each evaluation waits on up to
``MAX_RETRIES + 1`` provider calls of ``REQUEST_TIMEOUT_SECONDS`` each.
"""

import multiprocessing
import os

# ─── Server socket ──────────────────────────────────────────────

bind = os.getenv("BIND", "0.0.0.0:5000")
backlog = 2048

# ─── Worker processes ───────────────────────────────────────────
#
# One async worker per core.  Each worker owns its own provider clients,
# LLM concurrency limiter and (with the memory store) its own sessions,
# so multi-worker deployments need SESSION_STORE_TYPE=redis.

workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count(), 4)))
worker_class = "uvicorn.workers.UvicornWorker"

# ─── Timeouts ───────────────────────────────────────────────────
#
# Worst case per request: 3 attempts × 30s deadline, plus queueing.

timeout = 120
graceful_timeout = 60
keepalive = 5

# ─── Worker recycling ──────────────────────────────────────────

max_requests = 3000
max_requests_jitter = 500

# ─── Logging ────────────────────────────────────────────────────

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")
access_log_format = (
    '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" %(D)sμs'
)

proc_name = "interview-evaluator"

# ─── Server hooks ───────────────────────────────────────────────


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info(
        "Starting interview evaluator — workers=%d, timeout=%ds, bind=%s",
        workers,
        timeout,
        bind,
    )


def post_fork(server, worker):
    """Install request-ID aware logging in each worker."""
    from services.middleware import configure_logging

    configure_logging(loglevel.upper())
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_exit(server, worker):
    server.log.info("Worker exit (pid: %s)", worker.pid)
