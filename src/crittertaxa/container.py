"""Dependency injection container for crittertaxa."""

from pathlib import Path

from dependency_injector import containers, providers

from crittertaxa.config import ConfigManager, ToolboxConfig
from crittertaxa.database.core import DatabaseService
from crittertaxa.names.globalnames import GlobalNamesClient
from crittertaxa.names.verification import NameVerificationCache
from crittertaxa.system.path_resolver import PathResolver
from crittertaxa.taxonomy.cache import TaxonCache
from crittertaxa.taxonomy.classifier import GroupNameClassifier
from crittertaxa.taxonomy.inaturalist import INaturalistClient
from crittertaxa.taxonomy.rate_limiter import RateLimiter


def load_config(path_resolver: PathResolver, config_path: Path | None = None) -> ToolboxConfig:
    """Load the configuration, from ``config_path`` when given."""
    return ConfigManager(path_resolver, config_path=config_path).load()


class Container(containers.DeclarativeContainer):
    """Application dependency injection container.

    Rate limiters, clients and caches are singletons: every caller in the
    process shares one request budget per upstream service.
    """

    path_resolver = providers.Singleton(PathResolver)

    # Overridden by the CLI's --config option
    config_path = providers.Object(None)

    config = providers.Singleton(
        load_config,
        path_resolver=path_resolver,
        config_path=config_path,
    )

    database_path = providers.Factory(
        lambda resolver: resolver.get_database_path(),
        resolver=path_resolver,
    )

    database = providers.Singleton(
        DatabaseService,
        db_path=database_path,
    )

    inaturalist_rate_limiter = providers.Singleton(
        RateLimiter.per_minute,
        requests=config.provided.inaturalist.rate_limit.requests_per_minute,
        jitter_min_ms=config.provided.inaturalist.rate_limit.jitter_min_ms,
        jitter_max_ms=config.provided.inaturalist.rate_limit.jitter_max_ms,
    )

    globalnames_rate_limiter = providers.Singleton(
        RateLimiter.per_minute,
        requests=config.provided.globalnames.rate_limit.requests_per_minute,
        jitter_min_ms=config.provided.globalnames.rate_limit.jitter_min_ms,
        jitter_max_ms=config.provided.globalnames.rate_limit.jitter_max_ms,
    )

    inaturalist_client = providers.Singleton(
        INaturalistClient,
        rate_limiter=inaturalist_rate_limiter,
        base_url=config.provided.inaturalist.base_url,
        timeout=config.provided.inaturalist.timeout,
    )

    globalnames_client = providers.Singleton(
        GlobalNamesClient,
        rate_limiter=globalnames_rate_limiter,
        verifier_url=config.provided.globalnames.verifier_url,
        data_sources=config.provided.globalnames.data_sources,
        timeout=config.provided.globalnames.timeout,
    )

    taxon_cache = providers.Singleton(
        TaxonCache,
        database=database,
        client=inaturalist_client,
        batch_size=config.provided.inaturalist.batch_size,
    )

    name_verification_cache = providers.Singleton(
        NameVerificationCache,
        database=database,
        client=globalnames_client,
        freshness_days=config.provided.globalnames.freshness_days,
    )

    classifier = providers.Factory(
        GroupNameClassifier,
        taxon_cache=taxon_cache,
        policy=config.provided.critters.categories,
    )
