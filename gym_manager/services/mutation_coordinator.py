"""
Mutation Coordinator.

Write-through create / update / delete of members.  The remote write
comes first; the local cache and the revenue ledger follow only once the
remote accepted it.  A failed cache write is logged and left for the next
sync to repair; the remote outcome decides the result.

Creation sequence:

1. Validate the form (no remote call on failure).
2. Upload the photo, if any, and record its URL.
3. Stamp ``last_update_date`` and add the document; the remote assigns
   the id.
4. Write the document again under that id so it carries its own ``id``
   field.
5. Cache the member.
6. Append an income entry for ``amount_paid`` and bump the total.

Step 3 succeeding and step 4 failing leaves a remote document without an
``id`` field.  It is reported as an error and no compensation is tried.

Every operation returns one terminal ``Resource[MutationResult]``; there
are no retries.
"""

from __future__ import annotations

import uuid
from typing import Callable, Optional

from gym_manager.database import DatabaseManager
from gym_manager.errors import (
    CacheIOError,
    RemoteWriteError,
    UploadError,
    ValidationError,
)
from gym_manager.logger import StructuredLogger
from gym_manager.models.enums import ErrorKind
from gym_manager.models.member import Member
from gym_manager.models.revenue import RevenueEntry
from gym_manager.models.service_models import MutationResult, Resource
from gym_manager.repositories.protocols import ObjectStorage, RemoteMemberStore
from gym_manager.services.base_service import BaseService
from gym_manager.services.cache_manager import CacheManager
from gym_manager.services.revenue_ledger import RevenueLedgerService
from gym_manager.services.validation import validate_member
from gym_manager.utils.audit import DetailValue, log_audit_event
from gym_manager.utils.dates import now_millis

MutationResource = Resource[MutationResult]

PHOTO_CONTENT_TYPE: str = "image/jpeg"
MEMBER_REVENUE_TYPE: str = "income"

MSG_CREATED = "Member Added Successfully"
MSG_CREATED_NO_ENTRY = "Member added but failed to add revenue entry"
MSG_CREATED_NO_TOTAL = "Member added but failed to update total revenue"
MSG_UPDATED = "Member updated successfully"
MSG_DELETED = "Member deleted successfully"


class MutationCoordinator(BaseService):
    """Orchestrates member writes across remote, cache and ledger.

    Parameters
    ----------
    remote:
        Remote member collection.
    storage:
        Object storage for member photos.
    cache:
        Local member cache.
    ledger:
        Revenue ledger, credited when a member is created.
    logger:
        Structured logger instance.
    audit_db:
        Database whose ``audit_log`` table receives audit events;
        ``None`` logs them without persisting.
    actor:
        Recorded as the actor of every audit event.
    image_prefix:
        Storage folder for member photos.
    clock:
        Returns the current time in epoch millis.
    """

    def __init__(
        self,
        remote: RemoteMemberStore,
        storage: ObjectStorage,
        cache: CacheManager,
        ledger: RevenueLedgerService,
        logger: StructuredLogger,
        audit_db: Optional[DatabaseManager] = None,
        actor: str = "front-desk",
        image_prefix: str = "member_images",
        clock: Callable[[], int] = now_millis,
    ) -> None:
        super().__init__(logger)
        self._remote = remote
        self._storage = storage
        self._cache = cache
        self._ledger = ledger
        self._audit_db = audit_db
        self._actor = actor
        self._image_prefix = image_prefix.strip("/")
        self._clock = clock

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_member(self, member: Member, photo: Optional[bytes] = None) -> MutationResource:
        """Create *member* remotely, cache it and credit the ledger."""
        try:
            validate_member(member)
        except ValidationError as exc:
            return Resource.failure(exc.message, exc.kind)

        try:
            if photo is not None:
                member = member.model_copy(update={"photo_url": self._upload_photo(photo)})
        except UploadError as exc:
            self._logger.error("Photo upload failed: %s", exc.message)
            return Resource.failure(f"Failed to upload photo: {exc.message}", exc.kind)

        member = member.stamped(self._clock())

        try:
            member_id = self._remote.add(member.to_remote(include_id=False))
        except RemoteWriteError as exc:
            self._logger.error("Failed to add member: %s", exc.message)
            return Resource.failure(f"Failed to add member: {exc.message}", exc.kind)

        member = member.with_id(member_id)
        try:
            self._remote.set(member_id, member.to_remote())
        except RemoteWriteError as exc:
            self._logger.error("Failed to update member ID for %s: %s", member_id, exc.message)
            return Resource.failure(f"Failed to update member ID: {exc.message}", exc.kind)

        self._write_cache(self._cache.insert, member)

        message, revenue_recorded = self._credit_ledger(member)
        self._audit(
            "CREATE",
            member_id,
            {"name": member.name, "amount_paid": member.amount_paid,
             "revenue_recorded": revenue_recorded},
        )
        self._logger.info("Member %s created.", member_id)
        return Resource.success(
            MutationResult(message=message, member=member, revenue_recorded=revenue_recorded)
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_member(self, member: Member) -> MutationResource:
        """Overwrite an existing member.  No revenue effect."""
        if not member.has_id:
            return Resource.failure(
                "Failed to update member: member has no id", ErrorKind.VALIDATION
            )
        try:
            validate_member(member)
        except ValidationError as exc:
            return Resource.failure(exc.message, exc.kind)

        member = member.stamped(self._clock())
        try:
            self._remote.set(member.id, member.to_remote())
        except RemoteWriteError as exc:
            self._logger.error("Failed to update member %s: %s", member.id, exc.message)
            return Resource.failure(f"Failed to update member: {exc.message}", exc.kind)

        self._write_cache(self._cache.update, member)
        self._audit("UPDATE", member.id, {"name": member.name})
        return Resource.success(MutationResult(message=MSG_UPDATED, member=member))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_member(self, member_id: str) -> MutationResource:
        """Hard-delete a member remotely and from the cache."""
        try:
            self._remote.delete(member_id)
        except RemoteWriteError as exc:
            self._logger.error("Failed to delete member %s: %s", member_id, exc.message)
            return Resource.failure(f"Failed to delete member: {exc.message}", exc.kind)

        self._write_cache(self._cache.delete, member_id)
        self._audit("DELETE", member_id)
        return Resource.success(MutationResult(message=MSG_DELETED))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _upload_photo(self, photo: bytes) -> str:
        path = f"{self._image_prefix}/{uuid.uuid4()}.jpg"
        return self._storage.upload(path, photo, PHOTO_CONTENT_TYPE)

    def _write_cache(self, op: Callable[[object], None], arg: object) -> None:
        try:
            op(arg)
        except (CacheIOError, ValidationError) as exc:
            self._logger.error("Failed to write member cache: %s", exc.message)

    def _credit_ledger(self, member: Member) -> tuple[str, bool]:
        entry = RevenueEntry(
            name=member.name,
            amount=member.amount_paid,
            revenue_type=MEMBER_REVENUE_TYPE,
        )
        try:
            result = self._ledger.append_entry(entry)
        except RemoteWriteError as exc:
            self._logger.error("Failed to add revenue entry: %s", exc.message)
            return MSG_CREATED_NO_ENTRY, False

        if not result.total_updated:
            return MSG_CREATED_NO_TOTAL, False
        return MSG_CREATED, True

    def _audit(
        self,
        action: str,
        member_id: str,
        details: Optional[dict[str, DetailValue]] = None,
    ) -> None:
        if self._audit_db is None:
            log_audit_event(self._logger, action, "Member", member_id, self._actor, details)
            return
        with self._audit_db.write_lock:
            log_audit_event(
                logger=self._logger,
                action=action,
                entity_type="Member",
                entity_id=member_id,
                actor=self._actor,
                details=details,
                conn=self._audit_db.sqlite,
            )
