"""
Run pending schema migrations.
"""
import logging
import sys
import os

# Add the backend directory to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from easysplit.db.migrations.add_draft_data_to_splits import migrate

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        migrate()
        logger.info("Migration completed successfully!")
    except Exception:
        logger.exception("Migration failed")
        raise
