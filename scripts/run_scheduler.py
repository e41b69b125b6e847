#!/usr/bin/env python3
"""Run the package-alert chain on its cron schedule until interrupted.

Usage:
    python scripts/run_scheduler.py
    SCHEDULE_CRON="30 6 * * 1-5" python scripts/run_scheduler.py
"""
from __future__ import annotations

import logging
import sys

# Ensure project root is on sys.path
sys.path.insert(0, ".")

from pkgalerts.core.logging import setup_logging
from pkgalerts.core.settings import get_settings
from pkgalerts.pipeline.workflow import build_default_chain

logger = logging.getLogger("run_scheduler")


def main() -> None:
    setup_logging()
    chain = build_default_chain(get_settings())
    chain.resume()
    try:
        chain.run_forever()
    except KeyboardInterrupt:
        chain.stop()
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    main()
