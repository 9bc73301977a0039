#!/usr/bin/env python3
"""
Celery worker for the BiteAndCo order service.

Consumes the ``emails`` queue (buyer notifications) and the ``ratings`` queue
(seller rating reconciliation). Pass queue names as arguments to run a
dedicated worker, e.g. ``python celery_worker.py ratings``.
"""
import os
import sys

from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    from core.celery import celery_app
    from core.config import settings

    queues = sys.argv[1:] or ["emails", "ratings"]
    celery_app.start([
        "worker",
        f"--loglevel={settings.LOG_LEVEL.lower()}",
        f"--concurrency={os.getenv('CELERY_CONCURRENCY', '4')}",
        f"--queues={','.join(queues)}",
        "--without-gossip",
        "--without-mingle",
    ])
