"""
Record store queries — risk-score history and SOS reports.

All functions take an ``AsyncSession`` (from ``get_db``) and commit their
own writes so the created row comes back with its id and defaults.
Listings are newest first and paginated with ``limit``/``skip``.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.errors import NotFoundError
from backend.app.records.models import DisasterType, EmergencyReport, RiskLog

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 100
DEFAULT_REPORT_LIMIT = 50


# ── Risk log ──

async def create_risk_log(db: AsyncSession, city: str, risk_score: float) -> RiskLog:
    log = RiskLog(city=city.strip(), risk_score=risk_score)
    db.add(log)
    await db.commit()
    await db.refresh(log)
    logger.info("Risk score logged: %s=%.1f", log.city, log.risk_score)
    return log


async def list_risk_logs(
    db: AsyncSession,
    city: Optional[str] = None,
    limit: int = DEFAULT_LOG_LIMIT,
    skip: int = 0,
) -> Tuple[List[RiskLog], int]:
    """Newest-first logs, optionally filtered by a case-insensitive city substring."""
    conditions = []
    if city:
        conditions.append(
            func.lower(RiskLog.city).contains(city.strip().lower(), autoescape=True)
        )

    query = (
        select(RiskLog)
        .where(*conditions)
        .order_by(RiskLog.timestamp.desc(), RiskLog.id.desc())
        .offset(skip)
        .limit(limit)
    )
    logs = list((await db.scalars(query)).all())
    total = await db.scalar(select(func.count()).select_from(RiskLog).where(*conditions))
    return logs, int(total or 0)


# ── Emergency reports ──

async def create_emergency_report(
    db: AsyncSession,
    disaster_type: DisasterType,
    lat: float,
    lng: float,
    description: str = "",
) -> EmergencyReport:
    report = EmergencyReport(
        disaster_type=DisasterType(disaster_type).value,
        lat=lat,
        lng=lng,
        description=description or "",
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)
    logger.warning(
        "SOS report #%d: %s at (%.4f, %.4f)",
        report.id, report.disaster_type, report.lat, report.lng,
        extra={"lat": report.lat, "lon": report.lng},
    )
    return report


async def list_emergency_reports(
    db: AsyncSession,
    limit: int = DEFAULT_REPORT_LIMIT,
    skip: int = 0,
) -> Tuple[List[EmergencyReport], int]:
    query = (
        select(EmergencyReport)
        .order_by(EmergencyReport.created_at.desc(), EmergencyReport.id.desc())
        .offset(skip)
        .limit(limit)
    )
    reports = list((await db.scalars(query)).all())
    total = await db.scalar(select(func.count()).select_from(EmergencyReport))
    return reports, int(total or 0)


async def get_emergency_report(db: AsyncSession, report_id: int) -> EmergencyReport:
    report = await db.get(EmergencyReport, report_id)
    if report is None:
        raise NotFoundError("EmergencyReport", id=report_id)
    return report
