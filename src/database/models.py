"""
SQLAlchemy ORM Models for the Compliance Core.

Tables:
    clients            - Firm clients
    compliance_rules   - Per-tenant document/filing requirements
    documents          - Client documents with optional expiry
    filings            - Client regulatory filings
    compliance_scores  - Append-only compliance snapshots

Every table carries tenant_id; all queries filter on it.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, Index, CheckConstraint, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator


class JSONB(TypeDecorator):
    """JSONB on PostgreSQL, plain JSON elsewhere."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_JSONB())
        return dialect.type_descriptor(JSON())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


Base = declarative_base()


class ClientRecord(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    # Used to filter rules, e.g. "company", "individual", "partnership"
    client_type = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    documents = relationship("DocumentRecord", back_populates="client", cascade="all, delete-orphan")
    filings = relationship("FilingRecord", back_populates="client", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ClientRecord(id={self.id}, tenant_id={self.tenant_id})>"


class ComplianceRuleRecord(Base):
    __tablename__ = "compliance_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    rule_type = Column(String(30), nullable=False)
    # Document type or filing type the rule requires
    target = Column(String(100), nullable=False)
    weight = Column(Integer, nullable=False, default=1)
    # Null or empty means the rule applies to every client type
    client_types = Column(JSONB, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "rule_type IN ('document_required', 'filing_required')",
            name="ck_compliance_rules_rule_type",
        ),
        Index("ix_compliance_rules_tenant_active", "tenant_id", "is_active"),
    )


class DocumentRecord(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    document_type = Column(String(100), nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    client = relationship("ClientRecord", back_populates="documents")

    __table_args__ = (
        Index("ix_documents_tenant_client", "tenant_id", "client_id"),
    )


class FilingRecord(Base):
    __tablename__ = "filings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    filing_type = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="draft")
    due_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    client = relationship("ClientRecord", back_populates="filings")

    __table_args__ = (
        Index("ix_filings_tenant_client", "tenant_id", "client_id"),
    )


class ComplianceScoreRecord(Base):
    """One compliance snapshot. Rows are only ever inserted."""
    __tablename__ = "compliance_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    score_value = Column(Integer, nullable=False)
    level = Column(String(10), nullable=False)
    missing_count = Column(Integer, nullable=False, default=0)
    expiring_count = Column(Integer, nullable=False, default=0)
    overdue_filings_count = Column(Integer, nullable=False, default=0)
    last_calculated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    breakdown = Column(JSONB, nullable=True)

    __table_args__ = (
        CheckConstraint("score_value BETWEEN 0 AND 100", name="ck_compliance_scores_range"),
        CheckConstraint("level IN ('green', 'amber', 'red')", name="ck_compliance_scores_level"),
        Index("ix_compliance_scores_latest", "tenant_id", "client_id", "last_calculated_at"),
    )

    def __repr__(self):
        return (
            f"<ComplianceScoreRecord(client_id={self.client_id}, "
            f"score={self.score_value}, level={self.level})>"
        )
