"""
Recalculate automatic product scores.

Meant for a nightly cron. Window sizes come from settings
(PRODUCT_SCORE_LOOKBACK_DAYS, PRODUCT_SCORE_NEW_DAYS).

Usage:
    python scripts/recalc_product_scores.py
"""

import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

import structlog

from config import settings
from exceptions import AppError
from services.score_service import get_score_service

logger = structlog.get_logger(__name__)


def main() -> int:
    try:
        updated = get_score_service().recalculate()
    except AppError as e:
        logger.error("recalc_product_scores_failed", code=e.code, error=e.message)
        print(f"[ERROR] {e.message}")
        return 1

    print(
        f"[OK] Updated {updated} product scores "
        f"(window: {settings.product_score_lookback_days} days)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
