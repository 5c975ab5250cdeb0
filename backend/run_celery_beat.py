#!/usr/bin/env python3
# backend/run_celery_beat.py
"""
Development Celery beat runner.

Schedules bookings.expire_holds daily at SWEEP_HOUR in the reference time zone.
Run it with SWEEPER_ENABLED=false on the API so only one scheduler sweeps.
"""
import os
from pathlib import Path
import subprocess
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

if __name__ == "__main__":
    print("⏰ Starting Celery beat…")

    cmd = [sys.executable, "-m", "celery", "-A", "slotbook.tasks.celery_app", "beat", "--loglevel=info"]

    subprocess.run(cmd)
