#!/usr/bin/env python3
"""
Shopsignal Cron Recalculation Runner
====================================

Single-shot cron entry point: recalculates every interest score, then exits.

Local cron:
    0 * * * * cd /path/to/shopsignal && python scripts/cron_recalculate.py >> data/cron.log 2>&1
"""

import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")

logger = logging.getLogger("shopsignal.cron")


def main():
    from shopsignal.data.config import get_settings
    from shopsignal.orchestrator.logging_config import setup_logging_from_config
    from shopsignal.orchestrator.recalculation import RecalculationError
    from shopsignal.orchestrator.services import build_services

    settings = get_settings()
    setup_logging_from_config(settings.logging)

    logger.info("=" * 60)
    logger.info("SHOPSIGNAL CRON RECALCULATION")
    logger.info("=" * 60)

    services = build_services(settings)
    try:
        result = services.pipeline.run()
    except RecalculationError as e:
        logger.error(f"Recalculation aborted: {e}")
        return 1
    finally:
        services.close()

    logger.info(f"Result: {json.dumps(result.to_dict(), indent=2, default=str)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
