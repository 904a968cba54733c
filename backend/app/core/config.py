from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "FHIR Analytics"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Upstream FHIR server (read-only, unauthenticated)
    FHIR_BASE_URL: str = "https://server.fire.ly/r4"
    FHIR_TIMEOUT: float = 30.0  # seconds

    # Fetch retry policy
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_BACKOFF_BASE_SECONDS: float = 0.5

    # Count ceilings per query
    PERIOD_OBSERVATION_COUNT: int = 200
    PERIOD_CONDITION_COUNT: int = 200
    PERIOD_ENCOUNTER_COUNT: int = 100
    OVERALL_PATIENT_COUNT: int = 200
    OVERALL_RESOURCE_COUNT: int = 500

    # Seconds a snapshot may be reused by patient and timeline views
    SNAPSHOT_MAX_AGE_SECONDS: float = 300.0

    # Narrative insights
    MIN_PATIENTS_FOR_INSIGHTS: int = 5
    OPENAI_API_KEY: str = ""
    LLM_BASE_URL: str | None = None
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT: float = 90.0

    class Config:
        env_file = "../.env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
