"""
Migration script to add draft_data column to bill_splits table.
Databases created before editor state was persisted lack the column.
"""
import logging
from sqlalchemy import inspect, text
from easysplit.db.session import engine

logger = logging.getLogger(__name__)


def migrate(bind=None) -> bool:
    """Add the draft_data column if missing. Returns True when the schema changed."""
    bind = bind or engine
    inspector = inspect(bind)
    if not inspector.has_table("bill_splits"):
        logger.info("bill_splits table does not exist yet, nothing to migrate")
        return False

    columns = {column["name"] for column in inspector.get_columns("bill_splits")}
    if "draft_data" in columns:
        logger.info("draft_data column already exists, skipping")
        return False

    with bind.begin() as conn:
        conn.execute(text("ALTER TABLE bill_splits ADD COLUMN draft_data JSON"))
    logger.info("Added draft_data column to bill_splits table")
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    migrate()
