"""
Business Logic Services Package.

Cache management, incremental sync, member mutations and the revenue
ledger.  Services depend on the repository layer for data access and
never talk to Supabase or SQLite directly.

The ``create_services()`` factory wires every repository and service
together, returning a typed dict the entry point can consume without
knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Callable, Optional, TypedDict

from gym_manager.config import AppConfig
from gym_manager.database import DatabaseManager
from gym_manager.logger import get_logger
from gym_manager.repositories.member_cache_repository import MemberCacheRepository
from gym_manager.repositories.member_repository import SupabaseMemberRepository
from gym_manager.repositories.realtime_repository import SupabaseRealtimeRepository
from gym_manager.repositories.storage_repository import SupabaseStorageRepository
from gym_manager.services.cache_manager import CacheManager
from gym_manager.services.mutation_coordinator import MutationCoordinator
from gym_manager.services.revenue_ledger import RevenueLedgerService
from gym_manager.services.sync_engine import MembersResource, SyncEngine
from gym_manager.services.sync_worker import SyncWorkerService


class ServiceContainer(TypedDict):
    """Typed container for all data-layer services."""

    cache_manager: CacheManager
    sync_engine: SyncEngine
    sync_worker: SyncWorkerService
    revenue_ledger: RevenueLedgerService
    mutation_coordinator: MutationCoordinator


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    on_sync_result: Optional[Callable[[MembersResource], None]] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    entry point calls it once at startup, after ``initialize_schema``.

    Args:
        db: Initialised DatabaseManager (SQLite ready; Supabase optional).
        config: Application configuration.
        on_sync_result: Receives every result of background sync cycles.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    cache_repo = MemberCacheRepository(db=db, logger=logger)
    member_repo = SupabaseMemberRepository(db=db, logger=logger, table=config.MEMBERS_TABLE)
    realtime_repo = SupabaseRealtimeRepository(
        db=db,
        logger=logger,
        values_table=config.REALTIME_VALUES_TABLE,
        poll_interval_s=config.LISTEN_POLL_INTERVAL_S,
    )
    storage_repo = SupabaseStorageRepository(db=db, logger=logger, bucket=config.STORAGE_BUCKET)

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    cache_manager = CacheManager(repo=cache_repo, logger=logger)
    revenue_ledger = RevenueLedgerService(
        store=realtime_repo,
        logger=logger,
        revenue_path=config.REVENUE_PATH,
        total_path=config.TOTAL_REVENUE_PATH,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services
    # ------------------------------------------------------------------
    sync_engine = SyncEngine(cache=cache_manager, remote=member_repo, logger=logger)
    sync_worker = SyncWorkerService(
        engine=sync_engine,
        db=db,
        config=config,
        logger=logger,
        on_result=on_sync_result,
    )
    mutation_coordinator = MutationCoordinator(
        remote=member_repo,
        storage=storage_repo,
        cache=cache_manager,
        ledger=revenue_ledger,
        logger=logger,
        audit_db=db,
        actor=config.DEVICE_ID,
        image_prefix=config.MEMBER_IMAGE_PREFIX,
    )

    return ServiceContainer(
        cache_manager=cache_manager,
        sync_engine=sync_engine,
        sync_worker=sync_worker,
        revenue_ledger=revenue_ledger,
        mutation_coordinator=mutation_coordinator,
    )
