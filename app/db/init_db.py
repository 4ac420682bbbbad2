"""Initialize database tables"""
import logging
from typing import Optional

from sqlalchemy.engine import Engine

from app.db.base import Base
from app.db.session import engine as default_engine
from app.models.trial_fingerprint import TrialFingerprint  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all database tables"""
    try:
        Base.metadata.create_all(bind=bind or default_engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {str(e)}")
        raise
