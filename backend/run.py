#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Starts the API with auto-reload against the database configured in the
environment (``DATABASE_URL``, or ``TEST_DATABASE_URL`` when ``IS_TESTING``
is set).
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

import uvicorn

if __name__ == "__main__":
    print("Starting TuitionDesk API on http://localhost:8000 (docs at /docs)")

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
