from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    project_name: str = "vigil"
    database_url: str = "sqlite:///./vigil.db"

    admin_api_key: str = "dev-admin-key"

    upcoming_days_default: int = 7

    # timeline event types shown on the calendar; CourtDate/Meeting are not yet persistable
    calendar_timeline_types: list[str] = [
        "Sighting",
        "TipReceived",
        "StatusChanged",
        "SearchDispatched",
        "Found",
        "CaseClosed",
        "CourtDate",
        "Meeting",
    ]

    log_level: str = "INFO"
    log_json: bool = False
    expose_error_details: bool = True


settings = Settings()
