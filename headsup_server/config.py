import logging
import os

from dotenv import find_dotenv, load_dotenv

# Shared .env without overriding variables already set in the environment
_ENV_PATH = find_dotenv(usecwd=True)
if _ENV_PATH:
    load_dotenv(_ENV_PATH, override=False)


class Config:
    # Remote word generation endpoint (POST {category, difficulty, count, existingWords})
    WORD_SUPPLY_URL = os.environ.get('WORD_SUPPLY_URL') or 'http://localhost:8080/words'
    # Per-request timeout; a timed out batch counts as a failed batch
    WORD_SUPPLY_TIMEOUT_SEC = float(os.environ.get('WORD_SUPPLY_TIMEOUT_SEC', '30'))
    WORD_SUPPLY_BATCHES = int(os.environ.get('WORD_SUPPLY_BATCHES', '3'))
    WORD_SUPPLY_BATCH_SIZE = int(os.environ.get('WORD_SUPPLY_BATCH_SIZE', '50'))
    # Document key namespace (artifacts/<namespace>/...)
    STORE_NAMESPACE = os.environ.get('STORE_NAMESPACE', 'heads-up-v1')
    STORE_MAX_ATTEMPTS = int(os.environ.get('STORE_MAX_ATTEMPTS', '5'))
    # Background refresh fires when available < floor(total / divisor)
    LOW_WATERMARK_DIVISOR = int(os.environ.get('LOW_WATERMARK_DIVISOR', '10'))
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').strip().upper()


def configure_logging(level_name: str = 'INFO') -> None:
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        force=True,
    )
    logging.getLogger('headsup_server').setLevel(level)
