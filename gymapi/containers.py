from dependency_injector import containers, providers

from gymapi.config import Settings
from gymapi.services.notification_service import NotificationService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class ServiceModule(containers.DeclarativeContainer):
    """Request-independent services (DB-bound services come from gymapi.deps)."""

    config = providers.DependenciesContainer()

    notification_service = providers.Singleton(
        NotificationService, settings=config.config
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "gymapi.routers.booking_router",
            "gymapi.routers.wallet_router",
        ],
    )

    config = providers.Container(ConfigModule)
    services = providers.Container(ServiceModule, config=config)
