"""Data types for FHIR R4 resources read from the upstream server."""
from dataclasses import dataclass, field

PATIENT = "Patient"
OBSERVATION = "Observation"
CONDITION = "Condition"
ENCOUNTER = "Encounter"

HISTORY = "_history"


@dataclass(frozen=True)
class Reference:
    """Typed link to another resource, e.g. ``Patient/123``."""
    resource_type: str
    id: str

    @classmethod
    def parse(cls, value: str | None) -> "Reference | None":
        """
        Parse a ``<Type>/<id>`` string. Bare ids are taken as Patient ids.

        Absolute URLs keep only the type and id segments, and a trailing
        ``/_history/<version>`` is dropped. Anything that is not a non-empty
        string yields None.
        """
        if not isinstance(value, str):
            return None
        segments = value.strip().split("/")
        if len(segments) >= 4 and segments[-2] == HISTORY:
            segments = segments[:-2]
        if len(segments) == 1:
            return cls(PATIENT, segments[0]) if segments[0] else None
        resource_type, resource_id = segments[-2], segments[-1]
        if not resource_type or not resource_id:
            return None
        return cls(resource_type, resource_id)

    @classmethod
    def patient(cls, patient_id: str) -> "Reference":
        return cls(PATIENT, patient_id)

    @property
    def is_patient(self) -> bool:
        return self.resource_type == PATIENT

    def __str__(self) -> str:
        return f"{self.resource_type}/{self.id}"


@dataclass(frozen=True)
class Coding:
    system: str | None = None
    code: str | None = None
    display: str | None = None


@dataclass(frozen=True)
class CodeableConcept:
    text: str | None = None
    coding: tuple[Coding, ...] = ()

    @property
    def display_name(self) -> str | None:
        """Free text wins over the first coded display."""
        if self.text:
            return self.text
        if self.coding and self.coding[0].display:
            return self.coding[0].display
        return None

    @property
    def first_code(self) -> str | None:
        return self.coding[0].code if self.coding else None


@dataclass(frozen=True)
class Quantity:
    value: float | None = None
    unit: str | None = None


@dataclass(frozen=True)
class HumanName:
    text: str | None = None
    family: str | None = None
    given: tuple[str, ...] = ()


@dataclass(frozen=True)
class Address:
    city: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class Period:
    start: str | None = None  # ISO datetime as sent by the server
    end: str | None = None


@dataclass(frozen=True)
class Patient:
    """Patient demographics."""
    id: str
    name: HumanName | None = None
    gender: str | None = None  # male, female, other, unknown
    birth_date: str | None = None  # ISO date
    address: Address | None = None

    resource_type = PATIENT

    @property
    def reference(self) -> Reference:
        return Reference.patient(self.id)


@dataclass(frozen=True)
class ObservationComponent:
    """Sub-measurement, e.g. systolic/diastolic of a blood pressure panel."""
    code: CodeableConcept = field(default_factory=CodeableConcept)
    value_quantity: Quantity | None = None


@dataclass(frozen=True)
class Observation:
    """Clinical measurement."""
    id: str
    status: str | None = None
    code: CodeableConcept = field(default_factory=CodeableConcept)
    subject: Reference | None = None
    effective_datetime: str | None = None
    value_quantity: Quantity | None = None
    components: tuple[ObservationComponent, ...] = ()

    resource_type = OBSERVATION


@dataclass(frozen=True)
class Condition:
    """Diagnosis or problem list entry."""
    id: str
    clinical_status: CodeableConcept | None = None
    code: CodeableConcept = field(default_factory=CodeableConcept)
    subject: Reference | None = None
    recorded_date: str | None = None

    resource_type = CONDITION

    @property
    def clinical_status_code(self) -> str | None:
        if self.clinical_status is None:
            return None
        return self.clinical_status.first_code


@dataclass(frozen=True)
class Encounter:
    """Visit or contact between a patient and a provider."""
    id: str
    status: str | None = None  # finished, in-progress, cancelled, planned, ...
    encounter_class: Coding | None = None
    types: tuple[CodeableConcept, ...] = ()
    subject: Reference | None = None
    period: Period | None = None

    resource_type = ENCOUNTER

    @property
    def start(self) -> str | None:
        return self.period.start if self.period else None

    @property
    def type_name(self) -> str | None:
        """First type display, falling back to the class display."""
        for concept in self.types:
            if concept.display_name:
                return concept.display_name
        if self.encounter_class is not None:
            return self.encounter_class.display or self.encounter_class.code
        return None


Resource = Patient | Observation | Condition | Encounter
ClinicalResource = Observation | Condition | Encounter
