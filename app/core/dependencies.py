"""FastAPI dependencies"""
from typing import Generator
from fastapi import Depends
from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.services.fingerprint_store import FingerprintStore, SQLAlchemyFingerprintStore


def get_db() -> Generator:
    """
    Database session dependency
    Yields a database session and ensures it's closed after use
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_fingerprint_store(db: Session = Depends(get_db)) -> FingerprintStore:
    """Fingerprint store bound to the request's session"""
    return SQLAlchemyFingerprintStore(db)
