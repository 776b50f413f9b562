"""
TuneMood Main Application

Entry point that serves the FastAPI backend with uvicorn.
"""

import os

import uvicorn
from dotenv import load_dotenv

from .utils.logging_config import get_logger

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


def main():
    """Main entry point for the application."""
    host = os.getenv("BACKEND_HOST", "127.0.0.1")
    port = int(os.getenv("BACKEND_PORT", "8000"))

    logger.info("Starting TuneMood genre service", host=host, port=port)
    try:
        uvicorn.run(
            "tunemood.api.backend:app",
            host=host,
            port=port,
            log_level=os.getenv("LOG_LEVEL", "INFO").lower()
        )
    except KeyboardInterrupt:
        logger.info("Application stopped by user")


if __name__ == "__main__":
    main()
