# backend/config.py

"""
Client configuration.

Values come from the process environment, optionally seeded from a .env file
next to this module. Settings are read once per Settings() instance; nothing
here holds a connection or a token.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

from stock_models import ReferenceStock

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings:
    """Environment-backed settings for the inventory client"""

    def __init__(self):
        self.gas_api_url: str = os.environ.get('GAS_API_URL', '')
        self.gas_api_timeout: float = float(os.environ.get('GAS_API_TIMEOUT', '30'))
        self.log_level: str = os.environ.get('LOG_LEVEL', 'INFO').upper()

        reference = os.environ.get('STOCK_OPNAME_REFERENCE', ReferenceStock.ON_HAND.value)
        try:
            self.stock_opname_reference = ReferenceStock(reference.strip().lower())
        except ValueError:
            allowed = ', '.join(r.value for r in ReferenceStock)
            raise ValueError(
                f"STOCK_OPNAME_REFERENCE must be one of: {allowed}. Received: {reference!r}"
            )


def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT
    )
