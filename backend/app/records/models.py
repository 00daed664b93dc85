"""
Database models for the record store.

═══════════════════════════════════════════════════════════════════════════
DATABASE SCHEMA DESIGN
═══════════════════════════════════════════════════════════════════════════

Table: risk_logs
─────────────────────────────────────────────────────────────────────────────
| Column       | Type          | Description                               |
|--------------|---------------|-------------------------------------------|
| id           | SERIAL PK     | Auto-increment primary key                |
| city         | VARCHAR(120)  | City name as displayed (trimmed)          |
| risk_score   | FLOAT         | Score reported by the dashboard (0-100)   |
| timestamp    | TIMESTAMPTZ   | When the score was logged                 |
─────────────────────────────────────────────────────────────────────────────

Table: emergency_reports
─────────────────────────────────────────────────────────────────────────────
| Column        | Type          | Description                              |
|---------------|---------------|------------------------------------------|
| id            | SERIAL PK     | Auto-increment primary key               |
| disaster_type | VARCHAR(32)   | One of DisasterType                      |
| lat           | FLOAT         | Reporter latitude (-90 to 90)            |
| lng           | FLOAT         | Reporter longitude (-180 to 180)         |
| description   | VARCHAR(500)  | Free text, may be empty                  |
| created_at    | TIMESTAMPTZ   | Report creation time                     |
─────────────────────────────────────────────────────────────────────────────

Indexes:
- (city, timestamp) on risk_logs for per-city history
- created_at on emergency_reports for newest-first listing
- (lat, lng) on emergency_reports for future proximity queries

═══════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.database import Base

DESCRIPTION_MAX_LENGTH = 500
RISK_LOG_SCORE_MAX = 100.0


class DisasterType(str, Enum):
    FLOOD = "Flood"
    FIRE = "Fire"
    EARTHQUAKE = "Earthquake"
    LANDSLIDE = "Landslide"
    MEDICAL_EMERGENCY = "Medical Emergency"
    CYCLONE = "Cyclone"
    OTHER = "Other"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class RiskLog(Base):
    """One risk score shown to a user, for history charts."""
    __tablename__ = "risk_logs"
    __table_args__ = (
        Index("ix_risk_logs_city_timestamp", "city", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    risk_score: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "city": self.city,
            "risk_score": self.risk_score,
            "timestamp": _isoformat(self.timestamp),
        }


class EmergencyReport(Base):
    """An SOS report submitted from the dashboard."""
    __tablename__ = "emergency_reports"
    __table_args__ = (
        Index("ix_emergency_reports_created_at", "created_at"),
        Index("ix_emergency_reports_lat_lng", "lat", "lng"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    disaster_type: Mapped[str] = mapped_column(String(32), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH), nullable=False, default="",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "disaster_type": self.disaster_type,
            "lat": self.lat,
            "lng": self.lng,
            "description": self.description,
            "created_at": _isoformat(self.created_at),
        }
