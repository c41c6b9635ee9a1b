"""
Share code generation.

Codes are the only access key to a menu or split, so they come from a
cryptographic source and are unique across both namespaces.
"""
import logging
import secrets
from typing import Any, Callable
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from easysplit.core.config import settings
from easysplit.core.exceptions import CodeGenerationError
from easysplit.models.menu import Menu
from easysplit.models.split import BillSplit

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
LEGACY_CODE_LENGTH = 6
MAX_CODE_LENGTH = 8


def generate_code(length: int = None) -> str:
    """Map random bytes onto the 36-symbol alphabet."""
    length = length or settings.CODE_LENGTH
    return "".join(CODE_ALPHABET[b % len(CODE_ALPHABET)] for b in secrets.token_bytes(length))


def is_valid_code_length(code: str) -> bool:
    return LEGACY_CODE_LENGTH <= len(code) <= MAX_CODE_LENGTH


def code_in_use(code: str, db: Session) -> bool:
    """Check both namespaces since menus and splits share one link space."""
    if db.query(Menu.id).filter(Menu.code == code).first():
        return True
    return db.query(BillSplit.id).filter(BillSplit.code == code).first() is not None


def generate_unique_code(db: Session, max_attempts: int = None) -> str:
    """Generate a code not used by any menu or split, failing after a bounded number of tries."""
    max_attempts = max_attempts or settings.CODE_MAX_ATTEMPTS
    for attempt in range(1, max_attempts + 1):
        code = generate_code()
        if not code_in_use(code, db):
            return code
        logger.warning("Share code collision on attempt %d/%d", attempt, max_attempts)

    raise CodeGenerationError(f"Failed to generate a unique code after {max_attempts} attempts")


def save_with_unique_code(db: Session, build: Callable[[str], Any], max_attempts: int = None):
    """
    Insert the row returned by ``build(code)`` under a fresh code and commit.

    A concurrent writer can claim the same code between the check and the
    commit. The unique constraint then rejects the insert and a new code is
    drawn, within the same bounded number of attempts.
    """
    max_attempts = max_attempts or settings.CODE_MAX_ATTEMPTS
    for attempt in range(1, max_attempts + 1):
        code = generate_unique_code(db, max_attempts)
        row = build(code)
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if not code_in_use(code, db):
                raise
            logger.warning("Share code %s claimed concurrently, retrying (%d/%d)", code, attempt, max_attempts)
            continue
        except Exception:
            db.rollback()
            raise
        db.refresh(row)
        return row

    raise CodeGenerationError(f"Failed to store a unique code after {max_attempts} attempts")
