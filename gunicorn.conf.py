"""Gunicorn production configuration for the approval API."""
import multiprocessing
import os

wsgi_app = "quoteflow.main:app"
chdir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend")
bind = os.environ.get("BIND", "0.0.0.0:8000")
# Approval decisions run in the sync threadpool; keep worker count modest.
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 60
keepalive = 5
max_requests = 1000
max_requests_jitter = 100
preload_app = True
proc_name = "quoteflow-api"
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
