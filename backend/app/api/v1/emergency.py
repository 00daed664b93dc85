"""
FastAPI routes: SOS emergency reports.

    POST /api/v1/emergency/report
    GET  /api/v1/emergency/reports
    GET  /api/v1/emergency/reports/{report_id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.schemas import (
    EmergencyReportIn,
    EmergencyReportListResponse,
    EmergencyReportOut,
)
from backend.app.core.database import get_db
from backend.app.records import repository

router = APIRouter(prefix="/api/v1/emergency", tags=["emergency"])


@router.post("/report", response_model=EmergencyReportOut, status_code=201, summary="Submit an SOS report")
async def create_report(req: EmergencyReportIn, db: AsyncSession = Depends(get_db)):
    report = await repository.create_emergency_report(
        db, req.disaster_type, req.lat, req.lng, req.description,
    )
    return report.to_dict()


@router.get("/reports", response_model=EmergencyReportListResponse, summary="List SOS reports")
async def list_reports(
    limit: int = Query(default=repository.DEFAULT_REPORT_LIMIT, ge=1, le=500),
    skip: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    reports, total = await repository.list_emergency_reports(db, limit=limit, skip=skip)
    return {"count": len(reports), "total": total, "data": [r.to_dict() for r in reports]}


@router.get("/reports/{report_id}", response_model=EmergencyReportOut, summary="Get one SOS report")
async def get_report(report_id: int, db: AsyncSession = Depends(get_db)):
    report = await repository.get_emergency_report(db, report_id)
    return report.to_dict()
