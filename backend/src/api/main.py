"""FastAPI application main entry point."""

from __future__ import annotations

import logging
from pathlib import Path

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv

load_dotenv()  # must run before get_config() reads the environment

from .middleware import register_error_handlers
from .routes import auth, gmail, graph, notes, queue, system, tags
from ..services.config import get_config
from ..services.database import init_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler to run startup tasks."""
    system.install_log_buffer()
    logger.info("Running startup: initializing database...")
    db_path = init_database()
    logger.info("Startup complete", extra={"database": str(db_path)})
    yield


app = FastAPI(
    title="Notes Graph API",
    description="Notes categorized by a language model and explored as graphs",
    version="0.1.0",
    lifespan=lifespan,
)

config = get_config()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        config.app_url,
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Mount routers (auth first for /auth/*)
app.include_router(auth.router, tags=["auth"])
app.include_router(notes.router, tags=["notes"])
app.include_router(tags.router, tags=["tags"])
app.include_router(graph.router, tags=["graph"])
app.include_router(gmail.router, tags=["gmail"])
app.include_router(queue.router, tags=["queue"])
app.include_router(system.router, tags=["system"])

# Uploaded images referenced by Note.source_image_path
app.mount("/note-images", StaticFiles(directory=str(config.image_dir)), name="note-images")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


frontend_dist = Path(__file__).resolve().parents[3] / "frontend" / "dist"
if frontend_dist.exists():
    # Mount static assets
    app.mount(
        "/assets", StaticFiles(directory=str(frontend_dist / "assets")), name="assets"
    )

    # Catch-all route for SPA - serve index.html for all non-API routes
    @app.get("/{full_path:path}")
    async def serve_spa(full_path: str):
        """Serve the SPA for all non-API routes."""
        # Don't intercept API or auth routes
        if full_path.startswith(("api/", "auth/")) or full_path == "health":
            # Let FastAPI's 404 handler take over
            raise HTTPException(status_code=404, detail="Not found")

        # If the path looks like a file (has extension), try to serve it
        file_path = frontend_dist / full_path
        if file_path.is_file():
            return FileResponse(file_path)
        # Otherwise serve index.html for SPA routing
        return FileResponse(frontend_dist / "index.html")

    logger.info(f"Serving frontend SPA from: {frontend_dist}")
else:
    logger.warning(f"Frontend dist not found at: {frontend_dist}")

    # Fallback health endpoint if no frontend
    @app.get("/")
    async def root():
        """API health check endpoint."""
        return {"status": "ok", "service": "Notes Graph API"}


__all__ = ["app"]
