"""
Scheme catalogue: versioned, copy-on-write store of scheme records
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import InvalidTransition, NotFound, ValidationError, VersionConflict
from ..models.scheme import (
    ReviewFlag,
    SchemeRecord,
    SchemeStatus,
    UPSERT_FIELDS,
    get_current_utc_time
)
from .scheme_store import SchemeStore

logger = logging.getLogger(__name__)


# Allowed status changes; inactive is terminal
ALLOWED_TRANSITIONS = {
    SchemeStatus.ACTIVE: {SchemeStatus.SUSPENDED, SchemeStatus.INACTIVE},
    SchemeStatus.SUSPENDED: {SchemeStatus.ACTIVE, SchemeStatus.INACTIVE},
    SchemeStatus.INACTIVE: set(),
}


class SchemeCatalogue:
    """
    Source of truth for scheme records

    Every change produces a new immutable version. Reads never take a lock;
    writes are serialized per scheme id only.
    """

    def __init__(self, store: SchemeStore):
        self.store = store
        # Locks live only while a write on the id is running or waiting
        self._write_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    async def get_current(self, scheme_id: str, include_inactive: bool = False) -> SchemeRecord:
        """
        Get the current version of a scheme

        Args:
            scheme_id: Scheme identifier
            include_inactive: Also return discontinued schemes (historical lookup)

        Returns:
            Highest-version record

        Raises:
            NotFound: if the id is unknown or its current status is excluded
        """
        record = await self.store.latest(scheme_id)
        if record is None:
            raise NotFound(f"Scheme not found: {scheme_id}")
        if record.status == SchemeStatus.INACTIVE and not include_inactive:
            raise NotFound(f"Scheme is inactive: {scheme_id}")
        return record

    async def get_version(self, scheme_id: str, version: int) -> SchemeRecord:
        """Exact historical lookup, regardless of status"""
        record = await self.store.get_version(scheme_id, version)
        if record is None:
            raise NotFound(f"Scheme version not found: {scheme_id} v{version}")
        return record

    async def list_versions(self, scheme_id: str) -> List[SchemeRecord]:
        versions = await self.store.list_versions(scheme_id)
        if not versions:
            raise NotFound(f"Scheme not found: {scheme_id}")
        return versions

    async def list_active(self, category: Optional[str] = None) -> List[SchemeRecord]:
        """
        Get active schemes ordered by category then name

        Args:
            category: Only return schemes with this category tag
        """
        records = [
            record for record in await self.store.latest_all()
            if record.status == SchemeStatus.ACTIVE
        ]
        if category:
            wanted = category.lower()
            records = [record for record in records if record.category.lower() == wanted]
        records.sort(key=lambda r: (r.category.lower(), r.name.lower(), r.scheme_id))
        return records

    async def upsert(
        self,
        scheme_id: str,
        fields: Dict[str, Any],
        base_version: Optional[int] = None
    ) -> SchemeRecord:
        """
        Create version N+1 of a scheme from version N plus field overrides

        Args:
            scheme_id: Scheme identifier (new ids start at version 1)
            fields: Field overrides
            base_version: Version the caller read before writing; a mismatch
                with the current version is a conflict

        Returns:
            The newly written record

        Raises:
            ValidationError: if the merged record is malformed
            VersionConflict: if another write got there first
        """
        unknown = set(fields) - UPSERT_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be set by upsert: {sorted(unknown)}")

        async with self._write_lock(scheme_id):
            current = await self.store.latest(scheme_id)
            current_version = current.version if current else 0

            if base_version is not None and base_version != current_version:
                raise VersionConflict(
                    f"Scheme {scheme_id} is at version {current_version}, "
                    f"write was based on version {base_version}",
                    current_version=current_version
                )

            if current:
                data = current.model_dump()
            else:
                data = {"scheme_id": scheme_id, "status": SchemeStatus.ACTIVE}
            data.update(fields)
            data["version"] = current_version + 1
            data["updated_at"] = get_current_utc_time()

            record = self._build_record(data)
            await self.store.append_version(record)

        logger.info(f"Scheme {scheme_id} written as version {record.version}")
        return record

    async def set_status(self, scheme_id: str, status: SchemeStatus) -> SchemeRecord:
        """
        Change the status of a scheme by writing a new version

        Raises:
            NotFound: if the scheme id is unknown
            InvalidTransition: if the change is not allowed
        """
        status = SchemeStatus(status)

        async with self._write_lock(scheme_id):
            current = await self.store.latest(scheme_id)
            if current is None:
                raise NotFound(f"Scheme not found: {scheme_id}")
            if current.status == status:
                return current
            if status not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidTransition(
                    f"Cannot change scheme {scheme_id} from {current.status.value} to {status.value}"
                )

            record = current.model_copy(update={
                "version": current.version + 1,
                "status": status,
                "updated_at": get_current_utc_time()
            })
            await self.store.append_version(record)

        if current.status == SchemeStatus.SUSPENDED and status == SchemeStatus.ACTIVE:
            logger.warning(f"Scheme {scheme_id} reinstated from suspension (version {record.version})")
        else:
            logger.info(
                f"Scheme {scheme_id} status {current.status.value} -> {status.value} "
                f"(version {record.version})"
            )
        return record

    async def flag_inconsistency(self, scheme_id: str, description: str) -> ReviewFlag:
        """
        Raise an advisory review flag; status and versions are untouched

        Raises:
            NotFound: if the scheme id is unknown
        """
        if await self.store.latest(scheme_id) is None:
            raise NotFound(f"Scheme not found: {scheme_id}")
        flag = ReviewFlag(scheme_id=scheme_id, description=description)
        await self.store.add_flag(flag)
        logger.warning(f"Scheme {scheme_id} flagged for review: {description}")
        return flag

    async def list_flags(self, scheme_id: str, open_only: bool = False) -> List[ReviewFlag]:
        flags = await self.store.list_flags(scheme_id)
        if open_only:
            flags = [flag for flag in flags if not flag.resolved]
        return flags

    @asynccontextmanager
    async def _write_lock(self, scheme_id: str):
        lock = self._write_locks.setdefault(scheme_id, asyncio.Lock())
        self._lock_users[scheme_id] = self._lock_users.get(scheme_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[scheme_id] -= 1
            if not self._lock_users[scheme_id]:
                del self._lock_users[scheme_id]
                del self._write_locks[scheme_id]

    def _build_record(self, data: Dict[str, Any]) -> SchemeRecord:
        try:
            record = SchemeRecord.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid scheme record: {e}") from e

        if record.eligibility.is_empty() and not record.open_to_all:
            raise ValidationError(
                f"Scheme {record.scheme_id} needs at least one criterion or the open_to_all flag"
            )
        return record
