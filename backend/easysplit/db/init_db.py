"""
Database initialization script.
"""
import logging
from easysplit.db.session import init_db

# Import all models so SQLAlchemy can register them
from easysplit.models import Menu, MenuItem, BillSplit  # noqa: F401

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized successfully!")
