"""Database models"""
from app.models.trial_fingerprint import TrialFingerprint

__all__ = ["TrialFingerprint"]
