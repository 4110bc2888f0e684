"""Custom filters for uvicorn access logging."""

import logging

from chat_relay.settings import app_settings


class ExcludeMonitoringFilter(logging.Filter):
    """
    Logging filter to exclude monitoring endpoint requests from access logs.

    Requests to ``LOG_EXCLUDED_PATHS`` (by default /metrics and /health)
    are scraped often and would otherwise drown the relay's own logs.
    """

    def __init__(self, excluded_paths: list[str] | None = None):
        super().__init__()
        self.excluded_paths = (
            app_settings.LOG_EXCLUDED_PATHS
            if excluded_paths is None
            else excluded_paths
        )

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Determine if the log record should be logged.

        Args:
            record: The log record to evaluate.

        Returns:
            False if the request path is in excluded paths, True otherwise.
        """
        message = record.getMessage()
        return not any(path in message for path in self.excluded_paths)


def uvicorn_log_config() -> dict:
    """
    Uvicorn's default logging config with the monitoring filter attached
    to the access logger.
    """
    from uvicorn.config import LOGGING_CONFIG

    config = {
        **LOGGING_CONFIG,
        "filters": {
            "exclude_monitoring": {
                "()": "chat_relay.uvicorn_filters.ExcludeMonitoringFilter"
            }
        },
        "handlers": {
            name: dict(handler)
            for name, handler in LOGGING_CONFIG["handlers"].items()
        },
    }
    config["handlers"]["access"]["filters"] = ["exclude_monitoring"]
    return config
