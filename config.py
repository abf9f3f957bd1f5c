"""
Runtime configuration for the Rent Car backend.

Values come from the environment; a local .env file is loaded first so that
development setups don't need exported variables.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "rentcar")

# Consumed by the assistant features of the front end; passed through untouched.
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

OUTBOX_PATH = os.getenv("OUTBOX_PATH")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8000))


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
