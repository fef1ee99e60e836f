"""
Storage backends for versioned scheme records

Records are kept as an append-only sequence of immutable versions per scheme
id. The current record of a scheme is simply its highest version.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..exceptions import CatalogueUnavailable, VersionConflict
from ..models.scheme import ReviewFlag, SchemeRecord

logger = logging.getLogger(__name__)


class SchemeStore(ABC):
    """Persistence contract used by the scheme catalogue"""

    async def connect(self) -> None:
        """Open connections (no-op for in-process stores)"""

    async def close(self) -> None:
        """Release connections"""

    async def health_check(self) -> bool:
        return True

    @abstractmethod
    async def latest(self, scheme_id: str) -> Optional[SchemeRecord]:
        """Highest version of a scheme, or None if the id was never written"""

    @abstractmethod
    async def get_version(self, scheme_id: str, version: int) -> Optional[SchemeRecord]:
        """Exact version lookup"""

    @abstractmethod
    async def list_versions(self, scheme_id: str) -> List[SchemeRecord]:
        """Every version of a scheme in ascending order"""

    @abstractmethod
    async def latest_all(self) -> List[SchemeRecord]:
        """Highest version of every scheme id"""

    @abstractmethod
    async def append_version(self, record: SchemeRecord) -> None:
        """
        Store a new version

        Raises:
            VersionConflict: if (scheme_id, version) is already taken or the
                version does not directly follow the current one
        """

    @abstractmethod
    async def add_flag(self, flag: ReviewFlag) -> None:
        """Append a review flag"""

    @abstractmethod
    async def list_flags(self, scheme_id: str) -> List[ReviewFlag]:
        """Review flags of a scheme in the order they were raised"""


class InMemorySchemeStore(SchemeStore):
    """In-process store: one append-only list of frozen records per id"""

    def __init__(self):
        self._versions: Dict[str, List[SchemeRecord]] = {}
        self._flags: Dict[str, List[ReviewFlag]] = {}

    async def latest(self, scheme_id: str) -> Optional[SchemeRecord]:
        versions = self._versions.get(scheme_id)
        return versions[-1] if versions else None

    async def get_version(self, scheme_id: str, version: int) -> Optional[SchemeRecord]:
        versions = self._versions.get(scheme_id, [])
        if 1 <= version <= len(versions):
            return versions[version - 1]
        return None

    async def list_versions(self, scheme_id: str) -> List[SchemeRecord]:
        return list(self._versions.get(scheme_id, []))

    async def latest_all(self) -> List[SchemeRecord]:
        return [versions[-1] for versions in list(self._versions.values()) if versions]

    async def append_version(self, record: SchemeRecord) -> None:
        versions = self._versions.setdefault(record.scheme_id, [])
        if record.version != len(versions) + 1:
            raise VersionConflict(
                f"Scheme {record.scheme_id} is at version {len(versions)}, "
                f"cannot write version {record.version}",
                current_version=len(versions)
            )
        versions.append(record)

    async def add_flag(self, flag: ReviewFlag) -> None:
        self._flags.setdefault(flag.scheme_id, []).append(flag)

    async def list_flags(self, scheme_id: str) -> List[ReviewFlag]:
        return list(self._flags.get(scheme_id, []))


class MongoSchemeStore(SchemeStore):
    """
    MongoDB store

    Versions live in ``scheme_versions`` keyed by a unique (scheme_id, version)
    index, which makes the insert of a version the compare-and-swap step.
    """

    def __init__(self, url: str, db_name: str, timeout_seconds: float = 5.0):
        self.url = url
        self.db_name = db_name
        self.timeout_ms = int(timeout_seconds * 1000)
        self.client: Optional[AsyncIOMotorClient] = None
        self.db = None

    async def connect(self) -> None:
        """Connect to MongoDB and ensure indexes"""
        try:
            self.client = AsyncIOMotorClient(
                self.url,
                serverSelectionTimeoutMS=self.timeout_ms,
                socketTimeoutMS=self.timeout_ms,
                connectTimeoutMS=self.timeout_ms
            )
            self.db = self.client[self.db_name]
            await self.client.admin.command('ping')
            await self.db.scheme_versions.create_index(
                [("scheme_id", ASCENDING), ("version", ASCENDING)],
                unique=True
            )
            await self.db.scheme_flags.create_index([("scheme_id", ASCENDING), ("raised_at", ASCENDING)])
            logger.info("Connected to MongoDB successfully")
        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise CatalogueUnavailable(f"MongoDB unavailable: {e}") from e

    async def close(self) -> None:
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    async def health_check(self) -> bool:
        """Check MongoDB connection health"""
        if not self.client:
            return False
        try:
            await self.client.admin.command('ping')
            return True
        except PyMongoError:
            return False

    async def latest(self, scheme_id: str) -> Optional[SchemeRecord]:
        try:
            doc = await self.db.scheme_versions.find_one(
                {"scheme_id": scheme_id},
                sort=[("version", DESCENDING)]
            )
        except PyMongoError as e:
            raise self._unavailable("read scheme", e) from e
        return _record_from_doc(doc) if doc else None

    async def get_version(self, scheme_id: str, version: int) -> Optional[SchemeRecord]:
        try:
            doc = await self.db.scheme_versions.find_one({"scheme_id": scheme_id, "version": version})
        except PyMongoError as e:
            raise self._unavailable("read scheme version", e) from e
        return _record_from_doc(doc) if doc else None

    async def list_versions(self, scheme_id: str) -> List[SchemeRecord]:
        try:
            cursor = self.db.scheme_versions.find({"scheme_id": scheme_id}).sort("version", ASCENDING)
            return [_record_from_doc(doc) async for doc in cursor]
        except PyMongoError as e:
            raise self._unavailable("list scheme versions", e) from e

    async def latest_all(self) -> List[SchemeRecord]:
        pipeline = [
            {"$sort": {"scheme_id": 1, "version": -1}},
            {"$group": {"_id": "$scheme_id", "doc": {"$first": "$$ROOT"}}},
            {"$replaceRoot": {"newRoot": "$doc"}}
        ]
        try:
            cursor = self.db.scheme_versions.aggregate(pipeline)
            return [_record_from_doc(doc) async for doc in cursor]
        except PyMongoError as e:
            raise self._unavailable("list schemes", e) from e

    async def append_version(self, record: SchemeRecord) -> None:
        try:
            current = await self.db.scheme_versions.find_one(
                {"scheme_id": record.scheme_id},
                sort=[("version", DESCENDING)],
                projection={"version": 1}
            )
            current_version = current["version"] if current else 0
            if record.version != current_version + 1:
                raise VersionConflict(
                    f"Scheme {record.scheme_id} is at version {current_version}, "
                    f"cannot write version {record.version}",
                    current_version=current_version
                )
            await self.db.scheme_versions.insert_one(record.model_dump(mode="json"))
            logger.info(f"Scheme version stored: {record.scheme_id} v{record.version}")
        except DuplicateKeyError as e:
            raise VersionConflict(
                f"Version {record.version} of scheme {record.scheme_id} was written concurrently"
            ) from e
        except PyMongoError as e:
            raise self._unavailable("store scheme version", e) from e

    async def add_flag(self, flag: ReviewFlag) -> None:
        try:
            await self.db.scheme_flags.insert_one(flag.model_dump(mode="json"))
        except PyMongoError as e:
            raise self._unavailable("store review flag", e) from e

    async def list_flags(self, scheme_id: str) -> List[ReviewFlag]:
        try:
            cursor = self.db.scheme_flags.find({"scheme_id": scheme_id}).sort("raised_at", ASCENDING)
            return [ReviewFlag.model_validate(_strip_id(doc)) async for doc in cursor]
        except PyMongoError as e:
            raise self._unavailable("list review flags", e) from e

    def _unavailable(self, action: str, error: Exception) -> CatalogueUnavailable:
        logger.error(f"Failed to {action}: {error}")
        return CatalogueUnavailable(f"Failed to {action}: {error}")


def _strip_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


def _record_from_doc(doc: Dict[str, Any]) -> SchemeRecord:
    return SchemeRecord.model_validate(_strip_id(doc))
