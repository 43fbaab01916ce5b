"""
Main application entry point for the Assessly assessment engine.

Usage:
    - Direct: python -m assessly.main
    - ASGI server: uvicorn assessly.main:app
"""

import os

from assessly import create_app
from assessly.common.logger import app_logger

# Setup module logger
logger = app_logger.getChild("main")

# Create the FastAPI application
app = create_app()


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Welcome to the Assessly API"}


# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "assessly.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
