#!/usr/bin/env python3
# backend/run_celery_worker.py
"""
Development Celery worker with an embedded beat scheduler.

Runs the daily monthly-refill sweep alongside the worker, which is enough
for local development; production runs beat as its own process.
"""
import subprocess
import sys

if __name__ == "__main__":
    print("🚀 Starting Celery worker with beat (refill sweep daily at 00:15 UTC)…")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "fitsaga.tasks.celery_app",
        "worker",
        "--beat",
        "--loglevel=info",
        "--concurrency=2",
    ]

    subprocess.run(cmd)
