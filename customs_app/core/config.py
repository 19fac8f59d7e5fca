# customs_app/core/config.py
"""Environment driven settings for querying and exporting."""

import os

from dotenv import load_dotenv

load_dotenv()

APPLICATION_ID = os.environ.get("APPLICATION_ID", "Unknown")

QUERY_DEFAULT_PER_PAGE = int(os.getenv("QUERY_DEFAULT_PER_PAGE", "20"))
QUERY_MAX_PER_PAGE = int(os.getenv("QUERY_MAX_PER_PAGE", "100"))
EXPORT_BATCH_SIZE = int(os.getenv("EXPORT_BATCH_SIZE", "100"))
UNIT_PRICE_DECIMALS = int(os.getenv("UNIT_PRICE_DECIMALS", "4"))
RULESET_ADMIN_PER_PAGE = int(os.getenv("RULESET_ADMIN_PER_PAGE", "15"))
SUGGESTION_LIMIT = int(os.getenv("SUGGESTION_LIMIT", "10"))
SUGGESTION_MAX_LIMIT = int(os.getenv("SUGGESTION_MAX_LIMIT", "50"))
