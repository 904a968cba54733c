"""
Patients API Router - patient list, detail and encounter timeline.

Views read the latest snapshot for the requested period (overall when no
range is given) while it is fresh, and assemble a new one otherwise.
"""
import logging

from fastapi import APIRouter, HTTPException, Query, status

from app.core.dependencies import AnalyticsServiceDep, InsightsServiceDep, OptionalDateRangeDep
from app.domains.analytics.assembler import AggregationFailure
from app.domains.analytics.periods import DateRange
from app.domains.analytics.service import AnalyticsService, Snapshot
from app.domains.patients.schemas import (
    PatientDetailResponse,
    PatientListResponse,
    PatientNarrativeResponse,
    PatientSummaryResponse,
    TimelineEntryResponse,
    TimelineResponse,
)
from app.domains.patients.service import encounter_timeline, patient_detail, search_patients

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_snapshot(service: AnalyticsService, range_: DateRange | None) -> Snapshot:
    try:
        return await service.current(range_)
    except AggregationFailure as e:
        logger.error(f"Patient data fetch failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch FHIR data. Please try again later.",
        )


@router.get("/patients", response_model=PatientListResponse)
async def list_patients(
    range_: OptionalDateRangeDep,
    service: AnalyticsServiceDep,
    search: str | None = Query(None, description="Case-insensitive name filter"),
):
    """Patients in the snapshot, optionally filtered by name."""
    snapshot = await _load_snapshot(service, range_)
    patients = search_patients(snapshot.current.patients, search)
    return PatientListResponse(
        items=[PatientSummaryResponse.from_patient(p) for p in patients],
        total=len(patients),
    )


@router.get("/patients/{patient_id}", response_model=PatientDetailResponse)
async def get_patient(patient_id: str, range_: OptionalDateRangeDep, service: AnalyticsServiceDep):
    """Patient with observations, conditions and encounters (newest first)."""
    snapshot = await _load_snapshot(service, range_)
    detail = patient_detail(snapshot.current, patient_id)
    if detail is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Patient {patient_id} not found",
        )
    return PatientDetailResponse.from_detail(detail)


@router.get("/patients/{patient_id}/summary", response_model=PatientNarrativeResponse)
async def get_patient_summary(
    patient_id: str,
    range_: OptionalDateRangeDep,
    service: AnalyticsServiceDep,
    insights: InsightsServiceDep,
):
    """AI-generated one-paragraph health summary of a patient."""
    snapshot = await _load_snapshot(service, range_)
    detail = patient_detail(snapshot.current, patient_id)
    if detail is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Patient {patient_id} not found",
        )
    summary = await insights.patient_summary(detail.patient, detail.observations, detail.conditions)
    return PatientNarrativeResponse(patient_id=patient_id, summary=summary)


@router.get("/encounters/timeline", response_model=TimelineResponse)
async def get_encounter_timeline(range_: OptionalDateRangeDep, service: AnalyticsServiceDep):
    """Encounters newest first with the name of their patient."""
    snapshot = await _load_snapshot(service, range_)
    entries = encounter_timeline(snapshot.current)
    return TimelineResponse(
        items=[TimelineEntryResponse.from_entry(e) for e in entries],
        total=len(entries),
    )
