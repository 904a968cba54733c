"""Prompt templates for narrative summaries."""
import json
from typing import Any

from app.domains.fhir.types import Condition, Observation, Patient
from app.domains.patients.service import display_name

REGIONAL_SYSTEM_PROMPT = """You are a public health analyst AI. You analyze aggregated, \
de-identified health statistics and answer with a single JSON object only."""

REGIONAL_RESPONSE_FORMAT = """{
  "headline": "concise headline summarizing the main finding",
  "keyInsights": [{"insight": "text", "color": "indigo | emerald | amber | red"}],
  "demographics": {
    "summary": "paragraph on age and gender distributions",
    "ageDistributionChartData": [{"name": "0-18", "value": 0}],
    "genderDistributionChartData": [{"name": "male", "value": 0}]
  },
  "conditions": {
    "summary": "paragraph on prevalent conditions",
    "table": [{"name": "condition", "count": 0, "risk": "High | Medium | Low"}]
  },
  "publicHealthFocus": {"summary": "paragraph on public health considerations"},
  "comparativeAnalysis": {
    "summary": "trends versus the previous period",
    "metrics": [{"name": "metric", "currentValue": 0, "previousValue": 0, "changePercentage": 0.0}],
    "topConditionChanges": [{"name": "condition", "currentCount": 0, "previousCount": 0}]
  }
}"""

PATIENT_SYSTEM_PROMPT = """You are a medical assistant AI. Summarize the clinical picture \
of a patient from FHIR data. Do not provide medical advice."""

UNKNOWN_VITAL = "Unknown Vital"
MAX_PROMPT_VITALS = 5


def _period_block(summary: dict[str, Any]) -> str:
    conditions = ", ".join(
        f"{c['name']} ({c['count']} cases)" for c in summary["topConditions"]
    ) or "none"
    return (
        f"- Time Period: {summary['timePeriodDescription']}\n"
        f"- Total Patients: {summary['totalPatients']}\n"
        f"- Gender Distribution: {json.dumps(summary['genderDistribution'])}\n"
        f"- Age Distribution: {json.dumps(summary['ageDistribution'])}\n"
        f"- Top 5 Conditions: {conditions}\n"
        f"- Key Metrics: Total Encounters: {summary['totalEncounters']}, "
        f"Active Cases: {summary['activeCases']}"
    )


def build_regional_prompt(current: dict[str, Any], previous: dict[str, Any] | None) -> str:
    """User prompt for the regional (population) insights report."""
    previous_block = (
        _period_block(previous) if previous else "No previous period data available for comparison."
    )
    return f"""Analyze the following aggregated health data. The primary data is for the \
"Current Period". If "Previous Period" data is available, perform a comparative analysis.
Categorize condition risk based on prevalence and common medical knowledge (chronic diseases \
like Hypertension or Diabetes are 'High' risk).
Use double asterisks (e.g. **15%** or **25 cases**) to bold key numbers in all summary and \
insight text fields.

--- CURRENT PERIOD DATA ---
{_period_block(current)}

--- PREVIOUS PERIOD DATA ---
{previous_block}

Return a JSON object with this shape:
{REGIONAL_RESPONSE_FORMAT}

Only populate "comparativeAnalysis" when previous period data exists. Percentage change is \
((current - previous) / previous) * 100."""


def format_vitals_for_prompt(observations: tuple[Observation, ...] | list[Observation]) -> str:
    """One line per distinct vital among the first few observations."""
    lines: list[str] = []
    seen: set[str] = set()

    for obs in list(observations)[:MAX_PROMPT_VITALS]:
        name = obs.code.display_name or UNKNOWN_VITAL
        if name in seen or name == UNKNOWN_VITAL:
            continue
        when = f" (on {obs.effective_datetime[:10]})" if obs.effective_datetime else ""

        quantity = obs.value_quantity
        if quantity is not None and quantity.value is not None:
            lines.append(f"- {name}: {quantity.value:.2f} {quantity.unit or ''}".rstrip() + when)
            seen.add(name)
            continue

        parts = [
            f"{c.code.display_name}: {c.value_quantity.value:.2f} {c.value_quantity.unit or ''}".rstrip()
            for c in obs.components
            if c.value_quantity is not None and c.value_quantity.value is not None
        ]
        if parts:
            lines.append(f"- {name}: {', '.join(parts)}{when}")
            seen.add(name)

    return "\n".join(lines) if lines else "No recent vitals available."


def build_patient_prompt(
    patient: Patient,
    age: int | None,
    observations: tuple[Observation, ...] | list[Observation],
    conditions: tuple[Condition, ...] | list[Condition],
) -> str:
    """User prompt for a single patient's health summary."""
    condition_lines = "\n".join(
        f"  - {c.code.display_name}" for c in conditions if c.code.display_name
    ) or "  No active conditions listed."
    return f"""Based on the following FHIR data, provide a concise and easy-to-understand \
health summary in a single paragraph. Highlight key conditions, recent abnormal vital signs, \
and potential risks.

- Patient Demographics: {display_name(patient)}, {age if age is not None else 'N/A'} years old, \
{patient.gender or 'unknown'}.
- Active Conditions:
{condition_lines}
- Recent Vitals:
{format_vitals_for_prompt(observations)}

Health Summary:"""
