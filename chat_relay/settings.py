from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 8080


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = DEFAULT_PORT
    WS_PATH: str = "/"

    # Liveness sweep
    LIVENESS_SWEEP_INTERVAL_SECONDS: float = 5.0

    # Logging settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str | None = None
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]

    @field_validator("PORT", mode="before")
    @classmethod
    def fallback_port(cls, value: object) -> object:
        """
        Fall back to the default port when the value is not numeric.

        Args:
            value: Raw value read from the environment.

        Returns:
            The value unchanged when it parses as an int, otherwise
            ``DEFAULT_PORT``.
        """
        if isinstance(value, int):
            return value
        try:
            return int(str(value).strip())
        except ValueError:
            return DEFAULT_PORT


app_settings = Settings()
