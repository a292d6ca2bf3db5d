# main.py
import uvicorn

from exgate.adapters.auth_static_token import StaticTokenAuthAdapter
from exgate.adapters.event_publisher_inmemory import InMemoryEventPublisher
from exgate.adapters.extension_catalog_file_adapter import ExtensionCatalogFileAdapter
from exgate.adapters.logging_adapter import LoggingAdapter
from exgate.adapters.web.fastapi import create_app
from exgate.core.config import GatewayConfig
from exgate.core.logging_config import configure_logging
from exgate.core.managers.extension_manager import ExtensionGateway
from exgate.core.settings import app_settings, logger, set_logger


# main lives at the outermost layer (not in core)
# Instantiates all the concrete adapters
# Wires dependencies together
# Starts the application

def build_app(settings=app_settings):
    event_publisher = InMemoryEventPublisher()

    catalogs = [
        ExtensionCatalogFileAdapter(str(path), event_publisher=event_publisher)
        for path in settings.EXGATE_CATALOG_FILES
    ]
    if settings.EXGATE_WATCH_CATALOGS:
        for catalog in catalogs:
            catalog.start_file_watcher()

    auth = None
    if settings.EXGATE_ADMIN_TOKEN is not None:
        auth = StaticTokenAuthAdapter(settings.EXGATE_ADMIN_TOKEN)
    else:
        logger.warning("EXGATE_ADMIN_TOKEN not set, extension endpoints are open to every caller")

    # Factory passed to web adapter keeps composition here
    def gateway_factory():
        gateway = ExtensionGateway(
            config=GatewayConfig.from_app_settings(settings),
            event_publisher=event_publisher,
        )
        for catalog in catalogs:
            gateway.add_extension_service(catalog)
        return gateway

    return create_app(
        gateway_factory=gateway_factory,
        auth=auth,
        shutdown_hooks=[catalog.stop_file_watcher for catalog in catalogs],
        api_versions=settings.EXGATE_SUPPORTED_API_VERSIONS,
    )


def main():
    # Central logging configuration BEFORE injecting adapter so uvicorn adopts level/format
    configure_logging(app_settings.EXGATE_LOG_LEVEL)
    set_logger(LoggingAdapter("exgate", app_settings.EXGATE_LOG_LEVEL))
    app_settings.print_settings(logger)

    app = build_app()

    # Let uvicorn inherit existing logging (separate sinks & correlation ids)
    uvicorn.run(
        app,
        host=app_settings.EXGATE_HOST,
        port=app_settings.EXGATE_PORT,
        log_config=None,
        log_level=str(app_settings.EXGATE_LOG_LEVEL).lower(),
    )


if __name__ == "__main__":
    main()
