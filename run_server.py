#!/usr/bin/env python3
"""
Development server launcher for the Code Review API.

This script starts the FastAPI server with appropriate settings for development.
For production, you'd use a proper ASGI server deployment.
The UI is started separately with: streamlit run src/ui/app.py
"""

import os
import sys
from pathlib import Path

import uvicorn

# Make `src` importable when launched from anywhere
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print("Starting Code Review API Development Server")
    print(f"Project root: {project_root}")
    print(f"Server will be available at: http://localhost:{port}")
    print(f"API documentation at: http://localhost:{port}/docs")
    print("\n" + "="*50 + "\n")

    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",  # Accept connections from any IP
        port=port,
        reload=True,     # Auto-reload on code changes (development only)
        reload_dirs=[str(project_root / "src")],
        log_level="info"
    )
