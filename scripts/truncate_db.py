"""Delete every row from the record store.

Works on any SQLAlchemy backend (SQLite by default) by walking the ORM
metadata instead of the database catalog.

Usage:
    python scripts/truncate_db.py
"""

import logging
import os
from pathlib import Path

# Ensure .env is found when the script is run from any working directory.
os.chdir(Path(__file__).resolve().parent.parent)

from trial_extractor.db.base import Base
from trial_extractor.db.session import get_db, init_db

logger = logging.getLogger(__name__)


def main() -> None:
    init_db()
    db = next(get_db())
    try:
        tables = list(reversed(Base.metadata.sorted_tables))
        if not tables:
            logger.info("No tables found, nothing to truncate.")
            return

        logger.info("Truncating: %s", ", ".join(t.name for t in tables))
        for table in tables:
            db.execute(table.delete())
        db.commit()
        logger.info("Done.")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
