#!/usr/bin/env python3
"""
Create the PlayBook tables in the configured database.

    python scripts/init_db.py

Existing tables are left alone, so this is safe to re-run.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from playbook.config import settings
from playbook.db import Base, get_engine

logger = logging.getLogger("init_db")


def main() -> int:
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
    Base.metadata.create_all(get_engine())
    logger.info("Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
