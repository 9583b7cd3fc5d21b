"""
Gunicorn configuration for the IELTS grading API.

    gunicorn -c deploy/gunicorn.conf.py
"""
import os
import multiprocessing

wsgi_app = "ielts_backend.main:app"

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 2048

# Grading is CPU-light and I/O-bound on the database
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
keepalive = 5

# Logging to stdout/stderr
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = "ielts-grader"
daemon = False

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info(f"IELTS grading API ready on {bind} with {workers} workers")
