from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "PBX Console"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    # Remote authority (the call-routing platform's REST API)
    API_BASE_URL: str = "http://localhost:8080"
    API_TOKEN: str = ""
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Time/DayOfWeek/DateRange conditions are evaluated in this zone
    ROUTING_TIMEZONE: str = "UTC"

    LOG_LEVEL: str = "INFO"

    # Reference authority server
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    SERVICE_NAME: str = "pbx-console-reference"
    SERVICE_VERSION: str = "0.1.0"

    model_config = {"env_file": ".env", "case_sensitive": True}


settings = Settings()
