"""Parser turning FHIR JSON (bundles and resources) into typed resources."""
import logging
from typing import Any

from .types import (
    CONDITION,
    ENCOUNTER,
    OBSERVATION,
    PATIENT,
    Address,
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

logger = logging.getLogger(__name__)


class FhirParser:
    """Parser for FHIR R4 JSON documents.

    Every optional element may be missing; absent or malformed elements become
    ``None`` (or an empty tuple) instead of raising. Elements of the wrong JSON
    type count as malformed.
    """

    def parse_bundle(self, bundle: dict[str, Any] | None) -> list[Resource]:
        """
        Extract the resources wrapped in a searchset bundle.

        Args:
            bundle: Decoded JSON body of a search response

        Returns:
            Resources in server order; entries without a resource are dropped
        """
        if not isinstance(bundle, dict):
            return []

        resources: list[Resource] = []
        for entry in _list(bundle.get("entry")):
            raw = entry.get("resource") if isinstance(entry, dict) else None
            if not isinstance(raw, dict) or not raw:
                continue
            resource = self.parse_resource(raw)
            if resource is not None:
                resources.append(resource)
        return resources

    def parse_resource(self, raw: dict[str, Any]) -> Resource | None:
        """Parse a single resource by its ``resourceType`` discriminator."""
        if not isinstance(raw, dict):
            return None
        resource_type = _text(raw.get("resourceType"))
        handler = {
            PATIENT: self._parse_patient,
            OBSERVATION: self._parse_observation,
            CONDITION: self._parse_condition,
            ENCOUNTER: self._parse_encounter,
        }.get(resource_type)

        if handler is None:
            logger.debug(f"Skipping unsupported resource type: {resource_type}")
            return None
        if not raw.get("id"):
            logger.debug(f"Skipping {resource_type} without id")
            return None
        return handler(raw)

    def _parse_patient(self, raw: dict) -> Patient:
        names = _list(raw.get("name"))
        addresses = _list(raw.get("address"))
        return Patient(
            id=str(raw["id"]),
            name=self._parse_name(names[0]) if names else None,
            gender=_text(raw.get("gender")),
            birth_date=_text(raw.get("birthDate")),
            address=self._parse_address(addresses[0]) if addresses else None,
        )

    def _parse_observation(self, raw: dict) -> Observation:
        components = tuple(
            ObservationComponent(
                code=self._parse_concept(c.get("code")),
                value_quantity=self._parse_quantity(c.get("valueQuantity")),
            )
            for c in _list(raw.get("component"))
            if isinstance(c, dict)
        )
        return Observation(
            id=str(raw["id"]),
            status=_text(raw.get("status")),
            code=self._parse_concept(raw.get("code")),
            subject=self._parse_reference(raw.get("subject")),
            effective_datetime=_text(raw.get("effectiveDateTime")),
            value_quantity=self._parse_quantity(raw.get("valueQuantity")),
            components=components,
        )

    def _parse_condition(self, raw: dict) -> Condition:
        clinical_status = raw.get("clinicalStatus")
        return Condition(
            id=str(raw["id"]),
            clinical_status=self._parse_concept(clinical_status) if clinical_status else None,
            code=self._parse_concept(raw.get("code")),
            subject=self._parse_reference(raw.get("subject")),
            recorded_date=_text(raw.get("recordedDate")),
        )

    def _parse_encounter(self, raw: dict) -> Encounter:
        period = raw.get("period")
        return Encounter(
            id=str(raw["id"]),
            status=_text(raw.get("status")),
            encounter_class=self._parse_coding(raw.get("class")),
            types=tuple(self._parse_concept(t) for t in _list(raw.get("type"))),
            subject=self._parse_reference(raw.get("subject")),
            period=Period(start=_text(period.get("start")), end=_text(period.get("end")))
            if isinstance(period, dict) else None,
        )

    # --- Element helpers ---

    def _parse_reference(self, value: Any) -> Reference | None:
        if not isinstance(value, dict):
            return None
        return Reference.parse(value.get("reference"))

    def _parse_concept(self, value: Any) -> CodeableConcept:
        if not isinstance(value, dict):
            return CodeableConcept()
        codings = tuple(
            coding
            for coding in (self._parse_coding(c) for c in _list(value.get("coding")))
            if coding is not None
        )
        return CodeableConcept(text=_text(value.get("text")), coding=codings)

    def _parse_coding(self, value: Any) -> Coding | None:
        if not isinstance(value, dict):
            return None
        return Coding(
            system=_text(value.get("system")),
            code=_text(value.get("code")),
            display=_text(value.get("display")),
        )

    def _parse_quantity(self, value: Any) -> Quantity | None:
        if not isinstance(value, dict):
            return None
        number = value.get("value")
        try:
            number = float(number) if number is not None else None
        except (TypeError, ValueError):
            number = None
        return Quantity(value=number, unit=_text(value.get("unit")))

    def _parse_name(self, value: Any) -> HumanName | None:
        if not isinstance(value, dict):
            return None
        return HumanName(
            text=_text(value.get("text")),
            family=_text(value.get("family")),
            given=tuple(g for g in _list(value.get("given")) if isinstance(g, str)),
        )

    def _parse_address(self, value: Any) -> Address | None:
        if not isinstance(value, dict):
            return None
        return Address(city=_text(value.get("city")), country=_text(value.get("country")))


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None
