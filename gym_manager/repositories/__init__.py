"""
Repository Layer Package.

Data-access abstractions over Supabase (remote source of truth) and
SQLite (local member cache).  Services never touch ``db.supabase`` or
``db.sqlite`` directly.

Usage:
    from gym_manager.repositories import MemberCacheRepository
    from gym_manager.repositories import SupabaseMemberRepository
"""

from gym_manager.repositories.base_repository import BaseRepository
from gym_manager.repositories.member_cache_repository import MemberCacheRepository
from gym_manager.repositories.member_repository import SupabaseMemberRepository
from gym_manager.repositories.protocols import ObjectStorage, RealtimeStore, RemoteMemberStore
from gym_manager.repositories.realtime_repository import SupabaseRealtimeRepository
from gym_manager.repositories.storage_repository import SupabaseStorageRepository

__all__ = [
    "BaseRepository",
    "MemberCacheRepository",
    "ObjectStorage",
    "RealtimeStore",
    "RemoteMemberStore",
    "SupabaseMemberRepository",
    "SupabaseRealtimeRepository",
    "SupabaseStorageRepository",
]
