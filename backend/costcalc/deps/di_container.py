"""
Dependency injection container using dependency-injector.
Wires rate sources, services, repositories, and controllers.
"""

from dependency_injector import containers, providers

from costcalc.controllers.currency_rate_controller import CurrencyRateController
from costcalc.controllers.health_controller import HealthController
from costcalc.controllers.project_controller import ProjectController
from costcalc.core.config import settings
from costcalc.core.integrations.rate_sources import HttpRateSource
from costcalc.db.repositories.project_repository import ProjectRepository
from costcalc.services.exchange_rate_service import ExchangeRateService
from costcalc.services.health_service import HealthService
from costcalc.services.optimization_service import OptimizationService
from costcalc.services.project_calculation_service import ProjectCalculationService
from costcalc.services.project_service import ProjectService
from costcalc.services.rate_history_service import HistoricalRateTracker


class Container(containers.DeclarativeContainer):
    """Dependency injection container."""

    # Configuration
    config = providers.Configuration()

    # Rate sources
    primary_rate_source = providers.Singleton(
        HttpRateSource,
        name="exchangerate-api",
        url_template=config.primary_url,
        timeout=config.http_timeout,
        max_retries=config.http_retries,
        retry_delay=config.http_retry_delay,
    )

    fallback_rate_source = providers.Singleton(
        HttpRateSource,
        name="exchangerate-host",
        url_template=config.fallback_url,
        timeout=config.http_timeout,
        max_retries=config.http_retries,
        retry_delay=config.http_retry_delay,
    )

    # Repositories
    project_repository = providers.Singleton(
        ProjectRepository,
    )

    # Services
    rate_history = providers.Singleton(
        HistoricalRateTracker,
        retention_days=config.rate_history_days,
    )

    exchange_rate_service = providers.Singleton(
        ExchangeRateService,
        primary=primary_rate_source,
        fallback=fallback_rate_source,
        ttl_seconds=config.cache_ttl_seconds,
        history=rate_history,
    )

    calculation_service = providers.Singleton(
        ProjectCalculationService,
    )

    optimization_service = providers.Singleton(
        OptimizationService,
        calculation_service=calculation_service,
    )

    project_service = providers.Factory(
        ProjectService,
        exchange_rate_service=exchange_rate_service,
        project_repo=project_repository,
        calculation_service=calculation_service,
        rate_timeout=config.project_rate_timeout,
    )

    health_service = providers.Singleton(
        HealthService,
        exchange_rate_service=exchange_rate_service,
    )

    # Controllers
    health_controller = providers.Factory(
        HealthController,
        health_service=health_service,
    )

    project_controller = providers.Factory(
        ProjectController,
        project_service=project_service,
        optimization_service=optimization_service,
    )

    currency_rate_controller = providers.Factory(
        CurrencyRateController,
        exchange_rate_service=exchange_rate_service,
        rate_history=rate_history,
    )


def create_container() -> Container:
    """Build a container configured from application settings."""
    container = Container()
    container.config.from_dict({
        "primary_url": settings.EXCHANGE_RATE_PRIMARY_URL,
        "fallback_url": settings.EXCHANGE_RATE_FALLBACK_URL,
        "http_timeout": settings.EXCHANGE_RATE_HTTP_TIMEOUT,
        "http_retries": settings.EXCHANGE_RATE_HTTP_RETRIES,
        "http_retry_delay": settings.EXCHANGE_RATE_HTTP_RETRY_DELAY,
        "cache_ttl_seconds": settings.EXCHANGE_RATE_CACHE_TTL_SECONDS,
        "rate_history_days": settings.RATE_HISTORY_DAYS,
        "project_rate_timeout": settings.PROJECT_RATE_TIMEOUT_SECONDS,
    })
    return container


# Global container instance
_container: Container = None


def get_container() -> Container:
    """Get the global dependency injection container."""
    global _container
    if _container is None:
        _container = create_container()
    return _container


def set_container(container: Container) -> None:
    """Replace the global container (application startup and tests)."""
    global _container
    _container = container


# FastAPI dependencies

def get_health_controller() -> HealthController:
    return get_container().health_controller()


def get_project_controller() -> ProjectController:
    return get_container().project_controller()


def get_currency_rate_controller() -> CurrencyRateController:
    return get_container().currency_rate_controller()
