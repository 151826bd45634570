#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Serves the API with auto-reload on http://localhost:8000.
"""
import os

import uvicorn

if __name__ == "__main__":
    host = os.getenv("FITSAGA_HOST", "0.0.0.0")
    port = int(os.getenv("FITSAGA_PORT", "8000"))
    print(f"🚀 Starting FitSaga API at http://{host}:{port}")
    print(f"📚 API Docs: http://{host}:{port}/docs")

    uvicorn.run("fitsaga.main:app", host=host, port=port, reload=True, log_level="info")
