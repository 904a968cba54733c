# FHIR R4 read-only client and resource types
from .client import (
    FetchError,
    FhirClient,
    FhirClientError,
    FhirTransientError,
    get_fhir_client,
)
from .parser import FhirParser
from .retry import RetryPolicy
from .types import (
    CodeableConcept,
    Coding,
    Condition,
    Encounter,
    HumanName,
    Observation,
    ObservationComponent,
    Patient,
    Period,
    Quantity,
    Reference,
    Resource,
)

__all__ = [
    "FetchError",
    "FhirClient",
    "FhirClientError",
    "FhirTransientError",
    "get_fhir_client",
    "FhirParser",
    "RetryPolicy",
    "CodeableConcept",
    "Coding",
    "Condition",
    "Encounter",
    "HumanName",
    "Observation",
    "ObservationComponent",
    "Patient",
    "Period",
    "Quantity",
    "Reference",
    "Resource",
]
