"""Patient listing, patient detail and encounter timeline views."""
from dataclasses import dataclass
from datetime import datetime, timezone

from app.domains.analytics.aggregator import ProcessedData
from app.domains.analytics.reducer import age_in_years, parse_birth_date
from app.domains.fhir.types import Condition, Encounter, Observation, Patient, Reference

UNNAMED_PATIENT = "Unnamed Patient"
UNKNOWN_PATIENT = "Unknown Patient"

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def display_name(patient: Patient) -> str:
    """Free-text name, else ``given... family``, else a placeholder."""
    name = patient.name
    if name is None:
        return UNNAMED_PATIENT
    if name.text:
        return name.text
    joined = " ".join(p for p in (*name.given, name.family) if p)
    return joined or UNNAMED_PATIENT


def patient_name_for(data: ProcessedData, ref: Reference | None) -> str:
    """Name of the referenced patient; dangling references are tolerated."""
    patient = data.patient_for(ref)
    return display_name(patient) if patient is not None else UNKNOWN_PATIENT


def search_patients(patients: tuple[Patient, ...], term: str | None) -> list[Patient]:
    """Case-insensitive substring match on the display name."""
    if not term:
        return list(patients)
    needle = term.lower()
    return [p for p in patients if needle in display_name(p).lower()]


def format_vital(observation: Observation) -> str:
    """Short value string, e.g. ``72.0 kg`` or ``120mmHg/80mmHg``."""
    quantity = observation.value_quantity
    if quantity is not None and quantity.value is not None:
        return f"{quantity.value:.1f} {quantity.unit or ''}".rstrip()
    if observation.components:
        values = [
            f"{c.value_quantity.value:.0f}{c.value_quantity.unit or ''}"
            for c in observation.components
            if c.value_quantity is not None and c.value_quantity.value is not None
        ]
        if values:
            return "/".join(values)
    return "N/A"


def parse_instant(value: str | None) -> datetime | None:
    """Parse a FHIR dateTime (or date) as an aware datetime; naive values are UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        # Partial dates such as YYYY-MM
        return parse_birth_date(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _start_key(encounter: Encounter) -> tuple[bool, datetime]:
    # Missing or unparseable starts sort last when reversed
    instant = parse_instant(encounter.start)
    if instant is None:
        return False, _EARLIEST
    return True, instant


def newest_first(encounters: tuple[Encounter, ...] | list[Encounter]) -> list[Encounter]:
    return sorted(encounters, key=_start_key, reverse=True)


@dataclass(frozen=True)
class PatientDetail:
    patient: Patient
    name: str
    age: int | None
    observations: tuple[Observation, ...]
    conditions: tuple[Condition, ...]
    encounters: tuple[Encounter, ...]


@dataclass(frozen=True)
class TimelineEntry:
    encounter: Encounter
    patient_name: str


def patient_detail(data: ProcessedData, patient_id: str, now: datetime | None = None) -> PatientDetail | None:
    """Patient with its grouped records, or None when not in the snapshot."""
    ref = Reference.patient(patient_id)
    patient = data.patient_for(ref)
    if patient is None:
        return None
    return PatientDetail(
        patient=patient,
        name=display_name(patient),
        age=age_in_years(patient.birth_date, now),
        observations=data.observations_for(ref),
        conditions=data.conditions_for(ref),
        encounters=tuple(newest_first(data.encounters_for(ref))),
    )


def encounter_timeline(data: ProcessedData) -> list[TimelineEntry]:
    """Encounters with a subject, newest first, labelled with the patient name."""
    with_subject = [e for e in data.encounters if e.subject is not None]
    return [TimelineEntry(e, patient_name_for(data, e.subject)) for e in newest_first(with_subject)]
