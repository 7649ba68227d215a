"""Entry point for running the notes API with uvicorn."""

import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    # Run from the backend/ directory: python main.py
    # The web client's dev proxy expects port 8000; override with PORT=7860.
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("ENVIRONMENT", "").lower() in ("development", "dev")

    uvicorn.run(
        "src.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        reload=reload,
    )
