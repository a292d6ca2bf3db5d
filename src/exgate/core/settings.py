# Logging adapter for application-wide logging
from exgate.adapters.logging_adapter import LoggingAdapter

from pathlib import Path

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings
from rich import print

from exgate.core.interfaces.logging import LoggingPort

# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class ExgateSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"  # ignore unrelated environment variables
    }
    EXGATE_LOG_LEVEL: str = "INFO"
    EXGATE_HOST: str = "0.0.0.0"
    EXGATE_PORT: int = 8080
    # One extension service per catalog file
    EXGATE_CATALOG_FILES: list[Path] = [Path("extensions.yaml")]
    EXGATE_WATCH_CATALOGS: bool = True
    EXGATE_DEFAULT_LOCALE: str = "en"
    EXGATE_LIFECYCLE_WORKERS: int = 2
    # When unset, every caller is treated as administrator
    EXGATE_ADMIN_TOKEN: SecretStr | None = None
    # Supported API versions (major.minor strings). Used to mount versioned routes like /v1.0/
    EXGATE_SUPPORTED_API_VERSIONS: list[str] = ["1.0"]

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("exgate settings:")
        print(self)

    @field_validator("EXGATE_DEFAULT_LOCALE", mode="before")
    def normalize_locale(cls, value: str) -> str:
        """Accept both 'de_DE' and 'de-DE'."""
        return str(value).strip().replace("_", "-")


class NoOpLogger(LoggingPort):
    def info(self, msg: str, *args):
        pass

    def warning(self, msg: str, *args):
        pass

    def error(self, msg: str, *args):
        pass

    def debug(self, msg: str, *args):
        pass


class _DelegatingLogger(LoggingPort):
    """Module-level logger whose target can be swapped by the composition root.

    Modules import `logger` once at import time; `set_logger` changes where
    their messages go without re-importing anything.
    """

    def __init__(self, target: LoggingPort):
        self._target = target

    def info(self, msg: str, *args):
        self._target.info(msg, *args)

    def warning(self, msg: str, *args):
        self._target.warning(msg, *args)

    def error(self, msg: str, *args):
        self._target.error(msg, *args)

    def debug(self, msg: str, *args):
        self._target.debug(msg, *args)


app_settings = ExgateSettings()

logger = _DelegatingLogger(LoggingAdapter("exgate", app_settings.EXGATE_LOG_LEVEL))


def set_logger(new_logger: LoggingPort) -> None:
    logger._target = new_logger
