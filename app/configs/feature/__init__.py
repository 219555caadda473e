from pydantic import Field, PositiveInt
from pydantic_settings import BaseSettings


class LoggingConfig(BaseSettings):
    """
    Configuration for client logging
    """

    LOG_LEVEL: str = Field(
        description="Logging level, default to INFO. Set to DEBUG to log every CouchDB request.",
        default="INFO",
    )

    LOG_FILE: str | None = Field(
        description="File path for log output, console only when unset.",
        default=None,
    )

    LOG_FILE_MAX_SIZE: PositiveInt = Field(
        description="Log file size in megabytes (MB) before it is rotated",
        default=20,
    )

    LOG_FILE_BACKUP_COUNT: PositiveInt = Field(
        description="Number of rotated log files to keep",
        default=5,
    )

    LOG_FORMAT: str = Field(
        description="Format string for log messages, %(trace_id)s identifies the request",
        default="%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] %(trace_id)s - %(message)s",
    )

    LOG_DATEFORMAT: str | None = Field(
        description="Date format string for log timestamps",
        default=None,
    )

    LOG_TZ: str | None = Field(
        description="Timezone for log timestamps (e.g., 'Europe/Berlin')",
        default="UTC",
    )

    LOG_HTTPX_LEVEL: str = Field(
        description="Logging level of the httpx and httpcore loggers",
        default="WARNING",
    )


class FeatureConfig(LoggingConfig):
    pass
