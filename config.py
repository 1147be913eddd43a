"""
Runtime configuration, read from the environment (and a local .env file)
"""
import logging
import os

from dotenv import load_dotenv

load_dotenv()

# Database URL - supports both SQLite and PostgreSQL
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ledger.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))


def configure_logging(level: str = LOG_LEVEL):
    """Configure root logging once for the process"""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, level.upper(), logging.INFO)
    )
