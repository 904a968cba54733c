"""Pydantic schemas for patient and timeline views."""
from pydantic import BaseModel

from app.domains.fhir.types import Condition, Encounter, Observation, Patient
from app.domains.patients.service import PatientDetail, TimelineEntry, display_name, format_vital


class PatientSummaryResponse(BaseModel):
    id: str
    name: str
    gender: str | None = None
    birth_date: str | None = None
    city: str | None = None
    country: str | None = None

    @classmethod
    def from_patient(cls, patient: Patient) -> "PatientSummaryResponse":
        address = patient.address
        return cls(
            id=patient.id,
            name=display_name(patient),
            gender=patient.gender,
            birth_date=patient.birth_date,
            city=address.city if address else None,
            country=address.country if address else None,
        )


class PatientListResponse(BaseModel):
    items: list[PatientSummaryResponse]
    total: int


class ObservationResponse(BaseModel):
    id: str
    name: str | None
    status: str | None
    value: str
    effective_datetime: str | None = None

    @classmethod
    def from_observation(cls, observation: Observation) -> "ObservationResponse":
        return cls(
            id=observation.id,
            name=observation.code.display_name,
            status=observation.status,
            value=format_vital(observation),
            effective_datetime=observation.effective_datetime,
        )


class ConditionResponse(BaseModel):
    id: str
    name: str | None
    clinical_status: str | None
    recorded_date: str | None = None

    @classmethod
    def from_condition(cls, condition: Condition) -> "ConditionResponse":
        return cls(
            id=condition.id,
            name=condition.code.display_name,
            clinical_status=condition.clinical_status_code,
            recorded_date=condition.recorded_date,
        )


class EncounterResponse(BaseModel):
    id: str
    status: str | None
    type: str | None
    start: str | None = None
    end: str | None = None

    @classmethod
    def from_encounter(cls, encounter: Encounter) -> "EncounterResponse":
        return cls(
            id=encounter.id,
            status=encounter.status,
            type=encounter.type_name,
            start=encounter.start,
            end=encounter.period.end if encounter.period else None,
        )


class PatientDetailResponse(PatientSummaryResponse):
    age: int | None = None
    observations: list[ObservationResponse]
    conditions: list[ConditionResponse]
    encounters: list[EncounterResponse]

    @classmethod
    def from_detail(cls, detail: PatientDetail) -> "PatientDetailResponse":
        summary = PatientSummaryResponse.from_patient(detail.patient)
        return cls(
            **summary.model_dump(),
            age=detail.age,
            observations=[ObservationResponse.from_observation(o) for o in detail.observations],
            conditions=[ConditionResponse.from_condition(c) for c in detail.conditions],
            encounters=[EncounterResponse.from_encounter(e) for e in detail.encounters],
        )


class TimelineEntryResponse(EncounterResponse):
    patient_reference: str
    patient_name: str

    @classmethod
    def from_entry(cls, entry: TimelineEntry) -> "TimelineEntryResponse":
        base = EncounterResponse.from_encounter(entry.encounter)
        return cls(
            **base.model_dump(),
            patient_reference=str(entry.encounter.subject),
            patient_name=entry.patient_name,
        )


class TimelineResponse(BaseModel):
    items: list[TimelineEntryResponse]
    total: int


class PatientNarrativeResponse(BaseModel):
    patient_id: str
    summary: str
