"""Tests for the FHIR bundle/resource parser."""
import pytest

from app.domains.fhir import FhirParser, Reference
from app.domains.fhir.types import Condition, Encounter, Observation, Patient

from tests.samples import bundle


SAMPLE_PATIENT = {
    "resourceType": "Patient",
    "id": "pat-1",
    "name": [{"family": "Smith", "given": ["John", "A"]}],
    "gender": "male",
    "birthDate": "1980-05-15",
    "address": [{"city": "Chicago", "country": "US"}],
}

SAMPLE_BP_OBSERVATION = {
    "resourceType": "Observation",
    "id": "obs-1",
    "status": "final",
    "code": {"coding": [{"system": "http://loinc.org", "code": "85354-9", "display": "Blood pressure panel"}]},
    "subject": {"reference": "Patient/pat-1"},
    "effectiveDateTime": "2024-02-03T10:00:00Z",
    "component": [
        {"code": {"text": "Systolic"}, "valueQuantity": {"value": 120, "unit": "mmHg"}},
        {"code": {"text": "Diastolic"}, "valueQuantity": {"value": 80, "unit": "mmHg"}},
    ],
}

SAMPLE_CONDITION = {
    "resourceType": "Condition",
    "id": "cond-1",
    "clinicalStatus": {"coding": [{"system": "http://terminology.hl7.org/CodeSystem/condition-clinical", "code": "active", "display": "Active"}]},
    "code": {"text": "Hypertension"},
    "subject": {"reference": "Patient/pat-1"},
    "recordedDate": "2024-01-10",
}

SAMPLE_ENCOUNTER = {
    "resourceType": "Encounter",
    "id": "enc-1",
    "status": "finished",
    "class": {"code": "AMB", "display": "ambulatory"},
    "type": [{"coding": [{"display": "General examination"}]}],
    "subject": {"reference": "Patient/pat-1"},
    "period": {"start": "2024-02-03T09:30:00+01:00", "end": "2024-02-03T10:15:00+01:00"},
}


class TestFhirParser:
    """Tests for FhirParser."""

    def setup_method(self):
        self.parser = FhirParser()

    def test_parse_bundle_preserves_server_order(self):
        """Test that resources come back in entry order."""
        resources = self.parser.parse_bundle(
            bundle(SAMPLE_ENCOUNTER, SAMPLE_PATIENT, SAMPLE_CONDITION, SAMPLE_BP_OBSERVATION)
        )

        assert [type(r) for r in resources] == [Encounter, Patient, Condition, Observation]

    def test_parse_bundle_drops_entries_without_resource(self):
        """Test that empty entries are skipped."""
        raw = bundle(SAMPLE_PATIENT)
        raw["entry"].insert(0, {"fullUrl": "urn:missing"})
        raw["entry"].append({"resource": None})

        resources = self.parser.parse_bundle(raw)

        assert len(resources) == 1
        assert resources[0].id == "pat-1"

    @pytest.mark.parametrize("raw", [None, {}, {"resourceType": "Bundle", "total": 0}, "not a bundle"])
    def test_parse_bundle_without_entries(self, raw):
        """Test that bundles without entries yield an empty list."""
        assert self.parser.parse_bundle(raw) == []

    def test_parse_bundle_skips_unsupported_types(self):
        """Test that resource types outside the four supported ones are ignored."""
        raw = bundle({"resourceType": "OperationOutcome", "id": "x"}, SAMPLE_PATIENT)

        resources = self.parser.parse_bundle(raw)

        assert [r.id for r in resources] == ["pat-1"]

    def test_parse_patient(self):
        """Test parsing patient demographics."""
        patient = self.parser.parse_resource(SAMPLE_PATIENT)

        assert patient.gender == "male"
        assert patient.birth_date == "1980-05-15"
        assert patient.name.family == "Smith"
        assert patient.name.given == ("John", "A")
        assert patient.address.city == "Chicago"
        assert patient.reference == Reference("Patient", "pat-1")

    def test_parse_patient_with_only_id(self):
        """Test that every optional patient field may be absent."""
        patient = self.parser.parse_resource({"resourceType": "Patient", "id": "bare"})

        assert patient == Patient(id="bare")

    def test_parse_observation_components(self):
        """Test parsing a blood pressure panel."""
        obs = self.parser.parse_resource(SAMPLE_BP_OBSERVATION)

        assert obs.code.display_name == "Blood pressure panel"
        assert obs.subject == Reference("Patient", "pat-1")
        assert obs.value_quantity is None
        assert [c.value_quantity.value for c in obs.components] == [120.0, 80.0]
        assert obs.components[0].code.display_name == "Systolic"

    def test_parse_condition(self):
        """Test parsing clinical status and name."""
        condition = self.parser.parse_resource(SAMPLE_CONDITION)

        assert condition.clinical_status_code == "active"
        assert condition.code.display_name == "Hypertension"
        assert condition.recorded_date == "2024-01-10"

    def test_parse_condition_without_subject(self):
        """Test that a missing subject becomes None."""
        raw = {**SAMPLE_CONDITION, "subject": None}

        condition = self.parser.parse_resource(raw)

        assert condition.subject is None

    def test_parse_encounter(self):
        """Test parsing class, type and period."""
        encounter = self.parser.parse_resource(SAMPLE_ENCOUNTER)

        assert encounter.status == "finished"
        assert encounter.encounter_class.code == "AMB"
        assert encounter.type_name == "General examination"
        assert encounter.start == "2024-02-03T09:30:00+01:00"

    def test_parse_quantity_with_non_numeric_value(self):
        """Test that unusable quantity values become None."""
        raw = {**SAMPLE_BP_OBSERVATION, "valueQuantity": {"value": "n/a", "unit": "kg"}}

        obs = self.parser.parse_resource(raw)

        assert obs.value_quantity.value is None
        assert obs.value_quantity.unit == "kg"

    def test_wrongly_typed_elements_are_treated_as_missing(self):
        """Test that elements of the wrong JSON type do not break parsing."""
        raw = {
            **SAMPLE_BP_OBSERVATION,
            "subject": {"reference": 42},
            "code": {"text": 7, "coding": "85354-9"},
            "component": {"code": "Systolic"},
            "effectiveDateTime": 20240203,
        }

        obs = self.parser.parse_resource(raw)

        assert obs.subject is None
        assert obs.code.display_name is None
        assert obs.components == ()
        assert obs.effective_datetime is None

    def test_wrongly_typed_patient_name(self):
        raw = {**SAMPLE_PATIENT, "name": [{"given": "John", "family": ["Smith"]}], "gender": 1}

        patient = self.parser.parse_resource(raw)

        assert patient.name.given == ()
        assert patient.name.family is None
        assert patient.gender is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"entry": {"resource": {}}},
            {"entry": [{"resource": "Patient/1"}, {"resource": [1]}, "junk"]},
            {"entry": [{"resource": {"resourceType": ["Patient"], "id": "1"}}]},
        ],
    )
    def test_malformed_entries_are_skipped(self, raw):
        assert self.parser.parse_bundle(raw) == []


class TestReference:
    """Tests for Reference parsing."""

    def test_parse_patient_reference(self):
        ref = Reference.parse("Patient/123")
        assert ref == Reference.patient("123")
        assert ref.is_patient
        assert str(ref) == "Patient/123"

    def test_parse_absolute_reference(self):
        ref = Reference.parse("https://server.fire.ly/r4/Patient/abc")
        assert ref == Reference("Patient", "abc")

    def test_parse_bare_id_as_patient(self):
        assert Reference.parse("abc") == Reference("Patient", "abc")

    @pytest.mark.parametrize("value", [None, "", "Patient/", "/123"])
    def test_parse_unusable_reference(self, value):
        assert Reference.parse(value) is None

    def test_non_patient_reference(self):
        ref = Reference.parse("Group/9")
        assert not ref.is_patient

    @pytest.mark.parametrize(
        "value",
        ["Patient/1/_history/2", "https://server.fire.ly/r4/Patient/1/_history/7"],
    )
    def test_parse_versioned_reference(self, value):
        assert Reference.parse(value) == Reference.patient("1")

    @pytest.mark.parametrize("value", [42, 4.2, ["Patient/1"], {"reference": "Patient/1"}, True])
    def test_parse_non_string_reference(self, value):
        assert Reference.parse(value) is None
