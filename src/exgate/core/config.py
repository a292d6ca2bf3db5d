"""Configuration models for core domain components.

Pydantic-based configuration classes that consolidate settings for the
extension gateway, enabling dependency injection and testability.
"""

from pydantic import BaseModel, Field


class GatewayConfig(BaseModel):
    """Configuration for ExtensionGateway behavior.

    Attributes:
        default_locale: Language tag used when a request carries no usable
            Accept-Language header, and for provider resolution
        max_workers: Size of the background pool running install/uninstall
        thread_name_prefix: Name prefix of the pool's worker threads
    """

    default_locale: str = Field(
        default="en",
        min_length=1,
        description="Fallback locale tag (e.g. 'en', 'de-DE')"
    )

    max_workers: int = Field(
        default=2,
        ge=1,
        le=32,
        description="Number of worker threads for install/uninstall tasks"
    )

    thread_name_prefix: str = Field(
        default="extensionService",
        description="Thread name prefix for the lifecycle pool"
    )

    model_config = {
        "frozen": True,  # Immutable after creation
        "extra": "forbid",  # Reject unknown fields
    }

    @classmethod
    def from_app_settings(cls, settings) -> "GatewayConfig":
        """Factory method to construct config from an ExgateSettings instance."""
        return cls(
            default_locale=settings.EXGATE_DEFAULT_LOCALE,
            max_workers=settings.EXGATE_LIFECYCLE_WORKERS,
        )
