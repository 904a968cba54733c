"""
FHIR REST Client

Read-only access to a FHIR R4 server's search API. Every search goes through
a retry policy: 4xx responses fail immediately, network errors, timeouts and
5xx responses are retried with exponential backoff.

Default server: https://server.fire.ly/r4 (public, no authentication).
"""
import logging
from datetime import date
from typing import Any, Sequence

import httpx

from app.core.config import settings

from .parser import FhirParser
from .retry import RetryPolicy
from .types import (
    CONDITION,
    ENCOUNTER,
    OBSERVATION,
    PATIENT,
    Condition,
    Encounter,
    Observation,
    Patient,
    Resource,
)

logger = logging.getLogger(__name__)

QueryParams = Sequence[tuple[str, str | int]]


class FetchError(Exception):
    """Raised when a resource type could not be fetched."""

    def __init__(self, resource_type: str, cause: BaseException | None = None, message: str | None = None):
        self.resource_type = resource_type
        self.cause = cause
        super().__init__(message or f"Failed to fetch {resource_type}: {cause}")


class FhirClientError(FetchError):
    """Raised on a 4xx response. The query is malformed or refused; not retried."""

    def __init__(self, resource_type: str, status_code: int, cause: BaseException | None = None):
        self.status_code = status_code
        super().__init__(
            resource_type,
            cause,
            f"Client error fetching {resource_type}: HTTP {status_code}",
        )


class FhirTransientError(Exception):
    """Raised for a single failed attempt that may succeed when retried."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def is_retryable(error: BaseException) -> bool:
    """Only transient failures are retried; client errors never are."""
    return isinstance(error, FhirTransientError)


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.FETCH_MAX_ATTEMPTS,
        backoff_base=settings.FETCH_BACKOFF_BASE_SECONDS,
        retryable=is_retryable,
    )


def date_range_params(start: date, end: date) -> list[tuple[str, str]]:
    """Inclusive ``date`` search bounds."""
    return [("date", f"ge{start.isoformat()}"), ("date", f"le{end.isoformat()}")]


class FhirClient:
    """
    Async client for FHIR search requests.

    Usage:
        async with FhirClient() as client:
            patients = await client.fetch("Patient", [("_count", 50)])
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.FHIR_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.FHIR_TIMEOUT
        self.retry_policy = retry_policy or default_retry_policy()
        self.parser = FhirParser()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/fhir+json"},
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FhirClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def fetch(self, resource_type: str, params: QueryParams = (("_count", 50),)) -> list[Resource]:
        """
        Search one resource type.

        Args:
            resource_type: FHIR resource type, e.g. "Observation"
            params: Search parameters; repeated keys are allowed

        Returns:
            Resources in the order the server returned them

        Raises:
            FhirClientError: On a 4xx response (no retry)
            FetchError: When every attempt failed, or on any unexpected error
                while requesting or parsing (no retry)
        """
        params = list(params)

        def log_failure(attempt: int, error: BaseException, delay: float | None) -> None:
            if isinstance(error, FhirClientError):
                logger.error(f"{error}. Not retrying.")
            elif not self.retry_policy.retryable(error):
                logger.error(
                    f"Unexpected error fetching {resource_type} on attempt {attempt}: {error!r}. "
                    f"Not retrying."
                )
            elif delay is not None:
                logger.warning(
                    f"Attempt {attempt} to fetch {resource_type} failed: {error}. "
                    f"Retrying in {delay:.2f}s"
                )
            else:
                logger.error(
                    f"All {attempt} attempts to fetch {resource_type} failed: {error}"
                )

        try:
            return await self.retry_policy.run(
                lambda: self._fetch_once(resource_type, params),
                on_attempt_failed=log_failure,
            )
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(resource_type, e) from e

    async def _fetch_once(self, resource_type: str, params: list[tuple[str, Any]]) -> list[Resource]:
        """Single search request without retry."""
        try:
            response = await self._get_client().get(f"/{resource_type}", params=params)
        except httpx.HTTPError as e:
            raise FhirTransientError(f"Request error fetching {resource_type}: {e!r}") from e

        if 400 <= response.status_code < 500:
            raise FhirClientError(resource_type, response.status_code)
        if not response.is_success:
            raise FhirTransientError(
                f"Server error fetching {resource_type}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            bundle = response.json()
        except ValueError as e:
            raise FhirTransientError(f"Invalid JSON fetching {resource_type}: {e}") from e

        resources = self.parser.parse_bundle(bundle)
        logger.debug(f"Fetched {len(resources)} {resource_type} resources")
        return resources

    # --- Typed searches ---

    async def get_patients_by_ids(self, ids: Sequence[str]) -> list[Patient]:
        """Fetch patients by id. An empty id list issues no request."""
        if not ids:
            return []
        params = [("_id", ",".join(ids)), ("_count", len(ids))]
        return await self.fetch(PATIENT, params)

    async def get_recent_patients(self, count: int | None = None) -> list[Patient]:
        """Most recently updated patients."""
        count = count or settings.OVERALL_PATIENT_COUNT
        return await self.fetch(PATIENT, [("_count", count), ("_sort", "-_lastUpdated")])

    async def get_observations(self, start: date, end: date, count: int | None = None) -> list[Observation]:
        """Observations with an effective date inside [start, end]."""
        count = count or settings.PERIOD_OBSERVATION_COUNT
        params = [("_count", count), ("_sort", "-date"), *date_range_params(start, end)]
        return await self.fetch(OBSERVATION, params)

    async def get_conditions(self, start: date, end: date, count: int | None = None) -> list[Condition]:
        """
        Conditions recorded on or after ``start``.

        ``recorded-date`` is only bounded from below, so conditions recorded
        after ``end`` are included as well.
        """
        count = count or settings.PERIOD_CONDITION_COUNT
        return await self.fetch(CONDITION, [("_count", count), ("recorded-date", f"ge{start.isoformat()}")])

    async def get_encounters(self, start: date, end: date, count: int | None = None) -> list[Encounter]:
        """Encounters whose date falls inside [start, end]."""
        count = count or settings.PERIOD_ENCOUNTER_COUNT
        params = [("_count", count), ("_sort", "-date"), *date_range_params(start, end)]
        return await self.fetch(ENCOUNTER, params)

    async def get_for_subjects(
        self,
        resource_type: str,
        patient_ids: Sequence[str],
        count: int | None = None,
        sort: str | None = None,
    ) -> list[Resource]:
        """Resources whose subject is one of the given patients."""
        if not patient_ids:
            return []
        count = count or settings.OVERALL_RESOURCE_COUNT
        params: list[tuple[str, Any]] = [
            ("_count", count),
            ("subject", ",".join(f"{PATIENT}/{pid}" for pid in patient_ids)),
        ]
        if sort:
            params.append(("_sort", sort))
        return await self.fetch(resource_type, params)


# Singleton instance for reuse
_default_client: FhirClient | None = None


def get_fhir_client() -> FhirClient:
    """Get the default FHIR client instance."""
    global _default_client
    if _default_client is None:
        _default_client = FhirClient()
    return _default_client


async def close_fhir_client() -> None:
    """Close the default client, if one was created."""
    global _default_client
    if _default_client is not None:
        await _default_client.aclose()
        _default_client = None
