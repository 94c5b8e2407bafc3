#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Uses the local SQLite database and the HS256 identity verifier unless the
environment says otherwise. For local development only.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("IDENTITY_PROVIDER", "jwt")
os.environ.setdefault("DATABASE_URL", "sqlite:///./tutorconnect.db")

import uvicorn

if __name__ == "__main__":
    print("Starting TutorConnect development server")
    print(f"Database: {os.environ['DATABASE_URL']}")
    print("Access at: http://localhost:8000")
    print("API Docs: http://localhost:8000/docs")

    uvicorn.run("tutorconnect.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
