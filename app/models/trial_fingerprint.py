"""Trial fingerprint model tying a device/network signature to trial consumption"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index
from sqlalchemy.sql import func
from app.db.base import Base


class TrialFingerprint(Base):
    """
    One row per derived fingerprint.

    Rows are only written by the usage recorder and never deleted here.
    trial_start_date / trial_end_date are set in the same write that flips
    trial_used to True, and trial_used never goes back to False.
    """
    __tablename__ = "trial_fingerprints"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    fingerprint_hash = Column(String(128), unique=True, nullable=False, index=True)
    user_id = Column(String(255), nullable=True, index=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    screen_resolution = Column(String(50), nullable=True)
    timezone = Column(String(100), nullable=True)

    trial_used = Column(Boolean, default=False, nullable=False)
    trial_start_date = Column(DateTime(timezone=True), nullable=True)
    trial_end_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_trial_fingerprints_ip_created", "ip_address", "created_at"),
    )

    def __repr__(self):
        return f"<TrialFingerprint(id={self.id}, hash='{self.fingerprint_hash[:12]}...', trial_used={self.trial_used})>"
