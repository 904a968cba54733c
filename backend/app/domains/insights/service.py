"""
Insights Service - hands period statistics to the narrative summarizer.

The summarizer receives plain serializable snapshots only. Its output is
passed through untouched; this layer only checks that something came back.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from app.core.config import settings
from app.domains.analytics.reducer import Statistics, age_in_years
from app.domains.fhir.types import Condition, Observation, Patient
from app.domains.insights.prompts import (
    PATIENT_SYSTEM_PROMPT,
    REGIONAL_SYSTEM_PROMPT,
    build_patient_prompt,
    build_regional_prompt,
)
from app.domains.insights.summarizer import OpenAISummarizer, Summarizer

logger = logging.getLogger(__name__)

NOT_ENOUGH_DATA = "Not enough data for the selected period to generate meaningful insights."
REGIONAL_FAILED = "Could not generate AI regional insights at this time."
PATIENT_SUMMARY_FAILED = "Could not generate AI summary at this time."
PREVIOUS_PERIOD = "previous period"


@dataclass(frozen=True)
class InsightsResult:
    """Structured insights, or an explicit marker explaining their absence."""
    status: Literal["ok", "insufficient_data", "error"]
    insights: dict[str, Any] | None = None
    error: str | None = None


def build_period_summary(stats: Statistics, description: str) -> dict[str, Any]:
    """Plain serializable snapshot of one period for the summarizer."""
    return {
        "totalPatients": stats.total_patients,
        "totalEncounters": stats.total_encounters,
        "activeCases": stats.active_cases,
        "genderDistribution": {g.name: g.value for g in stats.gender_data},
        "ageDistribution": {a.name: a.patients for a in stats.age_group_data},
        "topConditions": [{"name": c.name, "count": c.count} for c in stats.top_conditions],
        "timePeriodDescription": description,
    }


class InsightsService:
    """Builds summarizer input and guards the summarizer boundary."""

    def __init__(self, summarizer: Summarizer | None = None, min_patients: int | None = None):
        self._summarizer = summarizer
        self.min_patients = (
            min_patients if min_patients is not None else settings.MIN_PATIENTS_FOR_INSIGHTS
        )

    @property
    def summarizer(self) -> Summarizer:
        """Lazy-load the default summarizer."""
        if self._summarizer is None:
            self._summarizer = OpenAISummarizer()
        return self._summarizer

    def has_enough_data(self, stats: Statistics | None) -> bool:
        return stats is not None and stats.total_patients >= self.min_patients

    def build_summary_input(
        self,
        current: Statistics,
        previous: Statistics | None,
        description: str,
    ) -> dict[str, Any]:
        """Current snapshot plus the previous one when it has any patients."""
        previous_summary = None
        if previous is not None and previous.total_patients > 0:
            previous_summary = build_period_summary(previous, PREVIOUS_PERIOD)
        return {
            "current": build_period_summary(current, description),
            "previous": previous_summary,
        }

    async def regional_insights(
        self,
        current: Statistics | None,
        previous: Statistics | None,
        description: str,
    ) -> InsightsResult:
        """
        Ask the summarizer for a population-level report.

        Returns an ``insufficient_data`` result without calling the summarizer
        when the current period has fewer than ``min_patients`` patients.
        """
        if not self.has_enough_data(current):
            logger.info(f"Skipping insights for {description}: not enough patients")
            return InsightsResult(status="insufficient_data", error=NOT_ENOUGH_DATA)

        summary_input = self.build_summary_input(current, previous, description)
        prompt = build_regional_prompt(summary_input["current"], summary_input["previous"])

        try:
            insights = await asyncio.to_thread(
                self.summarizer.complete_json, REGIONAL_SYSTEM_PROMPT, prompt
            )
        except Exception as e:
            logger.error(f"Error generating regional summary: {e}")
            return InsightsResult(status="error", error=REGIONAL_FAILED)

        if not insights:
            logger.warning(f"Summarizer returned no insights for {description}")
            return InsightsResult(status="error", error=REGIONAL_FAILED)
        return InsightsResult(status="ok", insights=insights)

    async def patient_summary(
        self,
        patient: Patient,
        observations: tuple[Observation, ...],
        conditions: tuple[Condition, ...],
        now: datetime | None = None,
    ) -> str:
        """One-paragraph health summary for a patient, or a fallback message."""
        prompt = build_patient_prompt(
            patient, age_in_years(patient.birth_date, now), observations, conditions
        )
        try:
            summary = await asyncio.to_thread(
                self.summarizer.complete_text, PATIENT_SYSTEM_PROMPT, prompt
            )
        except Exception as e:
            logger.error(f"Error generating health summary for Patient/{patient.id}: {e}")
            return PATIENT_SUMMARY_FAILED
        return summary or PATIENT_SUMMARY_FAILED


# Singleton instance for reuse
_default_service: InsightsService | None = None


def get_insights_service() -> InsightsService:
    """Get the default insights service instance."""
    global _default_service
    if _default_service is None:
        _default_service = InsightsService()
    return _default_service
