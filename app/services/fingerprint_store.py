"""Persistence for trial fingerprint records"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.trial_fingerprint import TrialFingerprint

# Dialect-specific INSERT constructs that support ON CONFLICT DO UPDATE
UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class FingerprintStore:
    """
    Interface consumed by the eligibility checker and the usage recorder.

    Implementations must be safe under concurrent callers and must apply
    upsert_conditional as a single atomic write per row.
    """

    def find_by_hash(self, fingerprint_hash: str) -> Optional[TrialFingerprint]:
        raise NotImplementedError

    def find_by_ip(self, ip_address: str, since: datetime) -> List[TrialFingerprint]:
        raise NotImplementedError

    def upsert_conditional(
        self,
        fingerprint_hash: str,
        new_fields: Dict[str, Any],
        where: Optional[Dict[str, Any]] = None,
    ) -> bool:
        raise NotImplementedError

    def list_all(self) -> List[TrialFingerprint]:
        raise NotImplementedError


class SQLAlchemyFingerprintStore(FingerprintStore):
    """FingerprintStore backed by a SQLAlchemy session (one per request)"""

    def __init__(self, db: Session):
        self.db = db

    def find_by_hash(self, fingerprint_hash: str) -> Optional[TrialFingerprint]:
        return self.db.query(TrialFingerprint).filter(
            TrialFingerprint.fingerprint_hash == fingerprint_hash
        ).first()

    def find_by_ip(self, ip_address: str, since: datetime) -> List[TrialFingerprint]:
        return (
            self.db.query(TrialFingerprint)
            .filter(
                TrialFingerprint.ip_address == ip_address,
                TrialFingerprint.created_at >= since,
            )
            .order_by(TrialFingerprint.created_at.desc())
            .all()
        )

    def list_all(self) -> List[TrialFingerprint]:
        return (
            self.db.query(TrialFingerprint)
            .order_by(TrialFingerprint.created_at.desc(), TrialFingerprint.id.desc())
            .all()
        )

    def upsert_conditional(
        self,
        fingerprint_hash: str,
        new_fields: Dict[str, Any],
        where: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Insert a row for *fingerprint_hash* or, if one exists, update it with
        *new_fields* only when every column in *where* still holds its
        expected value. Returns True when a row was inserted or updated.

        The whole decision is one INSERT ... ON CONFLICT statement, so two
        callers racing on the same hash cannot both apply. Only PostgreSQL
        and SQLite are supported.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect not in UPSERT_DIALECTS:
            raise NotImplementedError(f"Conditional upsert is not supported on {dialect}")

        table = TrialFingerprint.__table__
        condition = None
        if where:
            condition = and_(*(table.c[column] == expected for column, expected in where.items()))

        stmt = UPSERT_DIALECTS[dialect](table).values(fingerprint_hash=fingerprint_hash, **new_fields)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.fingerprint_hash],
            set_=new_fields,
            where=condition,
        ).returning(table.c.id)

        try:
            # No row comes back when the conflict's WHERE rejected the update
            applied = self.db.execute(stmt).first() is not None
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        # Later reads in this session must see the committed row
        self.db.expire_all()
        return applied
