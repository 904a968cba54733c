"""Tests for the analytics reducer."""
from datetime import datetime, timezone

import pytest

from app.domains.analytics.aggregator import build_processed_data, empty_processed_data
from app.domains.analytics.reducer import (
    AgeGroupCount,
    ConditionCount,
    NameValue,
    TrendPoint,
    age_group,
    age_in_years,
    reduce,
)

from tests.samples import make_condition, make_encounter, make_patient

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def data_with(patients=(), conditions=(), encounters=()):
    return build_processed_data(patients, (), conditions, encounters)


class TestAge:
    """Tests for the fixed-length-year age approximation."""

    @pytest.mark.parametrize(
        "birth_date,expected",
        [
            ("1990-01-01", 34),
            ("2024-01-01", 0),
            ("1984-06-02", 39),
            ("1990", 34),
            ("1990-07", 33),
        ],
    )
    def test_age_in_years(self, birth_date, expected):
        assert age_in_years(birth_date, NOW) == expected

    @pytest.mark.parametrize("birth_date", [None, "", "unknown", "19xx-01-01"])
    def test_unusable_birth_date(self, birth_date):
        assert age_in_years(birth_date, NOW) is None

    def test_naive_now_treated_as_utc(self):
        assert age_in_years("1990-01-01", datetime(2024, 6, 1)) == 34

    @pytest.mark.parametrize(
        "age,group",
        [(0, "0-18"), (18, "0-18"), (19, "19-40"), (40, "19-40"), (41, "41-60"), (60, "41-60"), (61, "60+"), (99, "60+")],
    )
    def test_age_group_upper_bounds_inclusive(self, age, group):
        assert age_group(age) == group


class TestReduce:
    """Tests for reduce()."""

    def test_empty_input_yields_zero_statistics(self):
        stats = reduce(empty_processed_data(), NOW)

        assert stats.total_patients == 0
        assert stats.total_encounters == 0
        assert stats.active_cases == 0
        assert stats.resolved_cases == 0
        assert stats.gender_data == ()
        assert stats.top_conditions == ()
        assert stats.encounter_trend == ()
        assert all(group.patients == 0 for group in stats.age_group_data)
        assert [g.name for g in stats.age_group_data] == ["0-18", "19-40", "41-60", "60+"]

    def test_single_patient_scenario(self):
        """Test one female patient born 1990 with one active hypertension."""
        data = data_with(
            patients=[make_patient("1", gender="female", birth_date="1990-01-01")],
            conditions=[make_condition("c1", "Patient/1", name="Hypertension", status="active")],
        )

        stats = reduce(data, NOW)

        assert stats.gender_data == (NameValue("female", 1),)
        assert stats.active_cases == 1
        assert stats.resolved_cases == 0
        assert AgeGroupCount("19-40", 1) in stats.age_group_data
        assert sum(g.patients for g in stats.age_group_data) == 1
        assert stats.top_conditions == (ConditionCount("Hypertension", 1),)

    def test_missing_gender_is_unknown(self):
        data = data_with(patients=[make_patient("1"), make_patient("2", gender="male"), make_patient("3")])

        stats = reduce(data, NOW)

        assert stats.gender_data == (NameValue("unknown", 2), NameValue("male", 1))

    def test_patients_without_birth_date_excluded_from_age_groups_only(self):
        data = data_with(
            patients=[
                make_patient("1", gender="male", birth_date="2010-03-01"),
                make_patient("2", gender="female"),
                make_patient("3", gender="female", birth_date="1950-03-01"),
            ]
        )

        stats = reduce(data, NOW)

        assert stats.total_patients == 3
        assert sum(g.value for g in stats.gender_data) == 3
        assert dict((g.name, g.patients) for g in stats.age_group_data) == {
            "0-18": 1, "19-40": 0, "41-60": 0, "60+": 1,
        }

    def test_case_status_is_exact_match(self):
        data = data_with(
            conditions=[
                make_condition("c1", "Patient/1", status="active"),
                make_condition("c2", "Patient/1", status="resolved"),
                make_condition("c3", "Patient/1", status="Active"),
                make_condition("c4", "Patient/1", status="recurrence"),
                make_condition("c5", "Patient/1"),
                make_condition("c6", "Patient/1", status="active"),
            ]
        )

        stats = reduce(data, NOW)

        assert stats.active_cases == 2
        assert stats.resolved_cases == 1

    def test_top_conditions_ranking_is_stable(self):
        """Test equal counts keep the order in which names were first seen."""
        names = ["Asthma", "Diabetes", "Asthma", "Obesity", "Diabetes", "Anemia", "Gout", "Migraine"]
        data = data_with(conditions=[make_condition(f"c{i}", "Patient/1", name=n) for i, n in enumerate(names)])

        stats = reduce(data, NOW)

        assert stats.top_conditions == (
            ConditionCount("Asthma", 2),
            ConditionCount("Diabetes", 2),
            ConditionCount("Obesity", 1),
            ConditionCount("Anemia", 1),
            ConditionCount("Gout", 1),
        )

    def test_condition_name_prefers_text_and_skips_nameless(self):
        data = data_with(
            conditions=[
                make_condition("c1", "Patient/1", name="Hypertension", coded_name="Essential hypertension"),
                make_condition("c2", "Patient/1", coded_name="Essential hypertension"),
                make_condition("c3", "Patient/1"),
            ]
        )

        stats = reduce(data, NOW)

        assert stats.top_conditions == (
            ConditionCount("Hypertension", 1),
            ConditionCount("Essential hypertension", 1),
        )

    def test_encounter_trend_sorted_by_date(self):
        data = data_with(
            encounters=[
                make_encounter("e1", "Patient/1", start="2024-03-02T10:00:00Z"),
                make_encounter("e2", "Patient/1", start="2024-01-15T08:00:00+02:00"),
                make_encounter("e3", "Patient/2", start="2024-03-02T23:59:00Z"),
                make_encounter("e4", "Patient/2"),
                make_encounter("e5", None, start="2024-02-01"),
            ]
        )

        stats = reduce(data, NOW)

        assert stats.total_encounters == 5
        assert stats.encounter_trend == (
            TrendPoint("2024-01-15", 1),
            TrendPoint("2024-02-01", 1),
            TrendPoint("2024-03-02", 2),
        )

    def test_reduce_is_idempotent(self):
        data = data_with(
            patients=[make_patient("1", gender="female", birth_date="1990-01-01")],
            conditions=[make_condition("c1", "Patient/1", name="Asthma", status="active")],
            encounters=[make_encounter("e1", "Patient/1", start="2024-01-01T00:00:00Z")],
        )

        assert reduce(data, NOW) == reduce(data, NOW)
        assert reduce(data, NOW).to_dict() == reduce(data, NOW).to_dict()

    def test_to_dict_is_plain_data(self):
        data = data_with(patients=[make_patient("1", gender="other")])

        result = reduce(data, NOW).to_dict()

        assert result["total_patients"] == 1
        assert result["gender_data"] == ({"name": "other", "value": 1},)
