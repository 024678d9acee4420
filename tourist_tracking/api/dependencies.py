"""FastAPI dependency injection: partition store, registry, location service, correlation_id."""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Request

from tourist_tracking.application.erasure import ErasureCoordinator
from tourist_tracking.application.history_reader import ScatterGatherReader
from tourist_tracking.application.location_service import LocationService
from tourist_tracking.application.partition_store import PartitionStore
from tourist_tracking.application.retention import RetentionEnforcer
from tourist_tracking.application.tier_lookup import StaticTouristProfileLookup, TouristProfileLookup
from tourist_tracking.application.write_router import WriteRouter
from tourist_tracking.config.settings import AppSettings, get_settings
from tourist_tracking.domain.models.location import UserTier
from tourist_tracking.infrastructure.memory.partition_store import InMemoryPartitionStore
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.key_policy import PartitionKeyPolicy, TimeGranularity
from tourist_tracking.partitioning.registry import PartitionRegistry


@dataclass
class Components:
    """Process-wide wiring. One registry per process so partition handles are shared."""

    settings: AppSettings
    store: PartitionStore
    profiles: TouristProfileLookup
    metrics: MetricsCollector
    policy: PartitionKeyPolicy
    registry: PartitionRegistry
    location_service: LocationService
    retention: RetentionEnforcer


def _build_store_and_profiles(settings: AppSettings, logger: logging.Logger):
    if settings.storage_backend == "memory":
        return InMemoryPartitionStore(), StaticTouristProfileLookup()

    from tourist_tracking.infrastructure.database.partition_store_sql import SqlPartitionStore
    from tourist_tracking.infrastructure.database.session import AsyncSessionLocal, engine
    from tourist_tracking.infrastructure.database.tourist_lookup_db import DbTouristProfileLookup

    profiles: TouristProfileLookup = DbTouristProfileLookup(AsyncSessionLocal)
    if settings.tier_cache_enabled:
        from tourist_tracking.infrastructure.cache.redis_client import RedisClient
        from tourist_tracking.infrastructure.cache.tourist_lookup_redis import CachedTouristProfileLookup

        profiles = CachedTouristProfileLookup(
            profiles,
            RedisClient(settings.redis_url),
            logger,
            ttl_seconds=settings.tier_cache_ttl_seconds,
        )
    return SqlPartitionStore(engine), profiles


def build_components(
    settings: AppSettings,
    *,
    store: Optional[PartitionStore] = None,
    profiles: Optional[TouristProfileLookup] = None,
    metrics: Optional[MetricsCollector] = None,
) -> Components:
    """Wire every component from settings. store/profiles/metrics may be injected (tests)."""
    logger = logging.getLogger("tourist_tracking")
    if store is None or profiles is None:
        default_store, default_profiles = _build_store_and_profiles(settings, logger)
        store = store or default_store
        profiles = profiles or default_profiles
    metrics = metrics or MetricsCollector()
    fixed_tier = UserTier(settings.fixed_tier) if settings.fixed_tier else None
    timeout = settings.partition_io_timeout_seconds

    policy = PartitionKeyPolicy(
        granularity=TimeGranularity(settings.time_granularity),
        standard_shards=settings.standard_shard_count,
        premium_shards=settings.premium_shard_count,
    )
    registry = PartitionRegistry(
        store,
        io_timeout_seconds=timeout,
        metrics=metrics,
        logger=logging.getLogger("tourist_tracking.partitioning"),
    )
    writer = WriteRouter(
        policy, registry, profiles, logger,
        io_timeout_seconds=timeout, fixed_tier=fixed_tier, metrics=metrics,
    )
    reader = ScatterGatherReader(
        policy, registry, profiles, logger,
        io_timeout_seconds=timeout, fixed_tier=fixed_tier, metrics=metrics,
    )
    erasure = ErasureCoordinator(
        policy, registry, profiles, logger,
        io_timeout_seconds=timeout,
        lookback_years=settings.erasure_lookback_years,
        fixed_tier=fixed_tier,
        metrics=metrics,
    )
    service = LocationService(
        writer, reader, erasure, profiles, logger,
        default_limit=settings.history_default_limit,
        max_limit=settings.history_max_limit,
        fixed_tier=fixed_tier,
    )
    retention = RetentionEnforcer(store, logger, io_timeout_seconds=timeout, metrics=metrics)
    return Components(
        settings=settings,
        store=store,
        profiles=profiles,
        metrics=metrics,
        policy=policy,
        registry=registry,
        location_service=service,
        retention=retention,
    )


_components: Components | None = None


def get_components() -> Components:
    """Return singleton component wiring."""
    global _components
    if _components is None:
        _components = build_components(get_settings())
    return _components


def get_location_service(
    components: Annotated[Components, Depends(get_components)],
) -> LocationService:
    return components.location_service


def get_registry(
    components: Annotated[Components, Depends(get_components)],
) -> PartitionRegistry:
    return components.registry


def get_metrics(
    components: Annotated[Components, Depends(get_components)],
) -> MetricsCollector:
    return components.metrics


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""
