"""
Gunicorn configuration for the PocketBrain API.

    gunicorn -c gunicorn.conf.py pocketbrain.main:app

Env vars that override defaults:
  PORT             TCP port to bind (default: 8000)
  WORKERS          number of worker processes (default: 2)
  WORKER_TIMEOUT   seconds before a silent worker is killed (default: 60)
  LOG_LEVEL        gunicorn's own log level (default: info)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Each save holds one DB connection for a single INSERT, so a small pool
# of workers goes a long way.
workers = int(os.environ.get("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = int(os.environ.get("WORKER_TIMEOUT", "60"))
graceful_timeout = 30

# Application logs are JSON on stdout (see pocketbrain.core.logging);
# access lines go to the same stream.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sus'
