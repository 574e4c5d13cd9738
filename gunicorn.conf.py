"""
Gunicorn configuration for Competitor Analysis production deployment.

Usage:
    gunicorn app.main:app -c gunicorn.conf.py
"""

import multiprocessing
import os

# Bind to all interfaces; PORT overrides the default 8000
bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"

# Embedded SQLite serializes writers; keep the pool small
workers = int(os.getenv("WEB_CONCURRENCY", min(multiprocessing.cpu_count() + 1, 4)))

# Use Uvicorn's ASGI worker for FastAPI
worker_class = "uvicorn.workers.UvicornWorker"

# Webhooks fetch results and fan out competitor submissions before replying
timeout = 120

# Keep-alive connections (seconds)
keepalive = 5

# Logging
accesslog = "-"  # stdout
errorlog = "-"   # stderr
loglevel = "info"
