"""Cross-referencing of fetched resources into patient-indexed collections."""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TypeVar

from app.domains.fhir.types import (
    ClinicalResource,
    Condition,
    Encounter,
    Observation,
    Patient,
    Reference,
)

R = TypeVar("R", Observation, Condition, Encounter)


def _empty_map() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class ProcessedData:
    """
    One immutable, fully cross-indexed dataset for a period.

    Grouping maps are keyed by subject reference and keep input order within
    each group. Resources without a subject appear only in the flat tuples.
    """
    patients: tuple[Patient, ...] = ()
    observations: tuple[Observation, ...] = ()
    conditions: tuple[Condition, ...] = ()
    encounters: tuple[Encounter, ...] = ()
    patient_map: Mapping[Reference, Patient] = field(default_factory=_empty_map, compare=False)
    observation_map: Mapping[Reference, tuple[Observation, ...]] = field(default_factory=_empty_map, compare=False)
    condition_map: Mapping[Reference, tuple[Condition, ...]] = field(default_factory=_empty_map, compare=False)
    encounter_map: Mapping[Reference, tuple[Encounter, ...]] = field(default_factory=_empty_map, compare=False)

    @property
    def is_empty(self) -> bool:
        return not (self.patients or self.observations or self.conditions or self.encounters)

    def patient_for(self, ref: Reference | None) -> Patient | None:
        """Patient behind a reference, or None for missing/dangling references."""
        if ref is None:
            return None
        return self.patient_map.get(ref)

    def observations_for(self, ref: Reference) -> tuple[Observation, ...]:
        return self.observation_map.get(ref, ())

    def conditions_for(self, ref: Reference) -> tuple[Condition, ...]:
        return self.condition_map.get(ref, ())

    def encounters_for(self, ref: Reference) -> tuple[Encounter, ...]:
        return self.encounter_map.get(ref, ())


def collect_patient_ids(*collections: Iterable[ClinicalResource]) -> set[str]:
    """Bare ids of every patient referenced as a subject."""
    ids: set[str] = set()
    for collection in collections:
        for resource in collection:
            subject = resource.subject
            if subject is not None and subject.is_patient:
                ids.add(subject.id)
    return ids


def _group_by_subject(resources: Iterable[R]) -> Mapping[Reference, tuple[R, ...]]:
    groups: dict[Reference, list[R]] = {}
    for resource in resources:
        if resource.subject is None:
            continue
        groups.setdefault(resource.subject, []).append(resource)
    return MappingProxyType({ref: tuple(items) for ref, items in groups.items()})


def build_processed_data(
    patients: Iterable[Patient],
    observations: Iterable[Observation],
    conditions: Iterable[Condition],
    encounters: Iterable[Encounter],
) -> ProcessedData:
    """Build the flat collections and the patient-keyed indexes."""
    patients = tuple(patients)
    observations = tuple(observations)
    conditions = tuple(conditions)
    encounters = tuple(encounters)

    return ProcessedData(
        patients=patients,
        observations=observations,
        conditions=conditions,
        encounters=encounters,
        patient_map=MappingProxyType({p.reference: p for p in patients}),
        observation_map=_group_by_subject(observations),
        condition_map=_group_by_subject(conditions),
        encounter_map=_group_by_subject(encounters),
    )


def empty_processed_data() -> ProcessedData:
    return build_processed_data((), (), (), ())
