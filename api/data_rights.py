"""
============================================================================
FILE: data_rights.py
LOCATION: api/data_rights.py
============================================================================

PURPOSE:
    Personal-data handling: retention policy, location history, consent-aware
    query logging, and the export/delete data-rights endpoints.

ROLE IN PROJECT:
    The account router records every published location here; the nearby
    search logs queries here; tools/purge_expired_data.py runs the purge.

KEY COMPONENTS:
    - DataProtection: Singleton service holding the retention policy
    - GET /api/user/data-rights?action=export: Right to data portability
    - DELETE /api/user/data-rights: Right to be forgotten

DEPENDENCIES:
    - External: fastapi
    - Internal: config, cache, auth, identity, errors, models, logging_config

USAGE:
    from api.data_rights import DataProtection
    DataProtection.get_instance().purge_expired_data()
============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

try:
    from auth import get_current_principal
    from cache import invalidate_search_cache
    from config import get_db
    from errors import BadRequestError, failure_message
    from identity import delete_identity
    from logging_config import get_logger
    from models import GeoPoint, TokenClaims
except ImportError:
    from api.auth import get_current_principal
    from api.cache import invalidate_search_cache
    from api.config import get_db
    from api.errors import BadRequestError, failure_message
    from api.identity import delete_identity
    from api.logging_config import get_logger
    from api.models import GeoPoint, TokenClaims


logger = get_logger("data_rights")

LOCATION_HISTORY_COLLECTION = "location_history"
USER_QUERIES_COLLECTION = "user_queries"

# Firestore caps a write batch at 500 operations
BATCH_LIMIT = 500


@dataclass(frozen=True)
class RetentionPolicy:
    """Retention periods, in days."""

    location_data: int = 90
    query_history: int = 60
    anonymous_usage_data: int = 365


def _profile_collection(principal: TokenClaims) -> str:
    return "users" if principal.role == "user" else "peddlers"


class _BatchWriter:
    """Accumulates writes and commits every BATCH_LIMIT operations."""

    def __init__(self, db):
        self._db = db
        self._batch = db.batch()
        self._pending = 0
        self.committed = 0

    def _op(self):
        self._pending += 1
        if self._pending >= BATCH_LIMIT:
            self.flush()

    def delete(self, ref):
        self._batch.delete(ref)
        self._op()

    def update(self, ref, data):
        self._batch.update(ref, data)
        self._op()

    def flush(self):
        if self._pending:
            self._batch.commit()
            self.committed += self._pending
            self._batch = self._db.batch()
            self._pending = 0


class DataProtection:
    _instance: Optional["DataProtection"] = None

    def __init__(self, policy: Optional[RetentionPolicy] = None, clock=None):
        self.policy = policy or RetentionPolicy()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def get_instance(cls) -> "DataProtection":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _expiry(self, days: int) -> str:
        return (self._clock() + timedelta(days=days)).isoformat()

    @staticmethod
    def anonymize_location(location: GeoPoint) -> GeoPoint:
        """Reduce precision to two decimals (roughly 1 km)."""
        return GeoPoint(lat=round(location.lat, 2), lon=round(location.lon, 2))

    def record_location(self, uid: str, location: GeoPoint) -> None:
        """Append a location history entry that expires with the policy."""
        get_db().collection(LOCATION_HISTORY_COLLECTION).add(
            {
                "userId": uid,
                "location": location.model_dump(),
                "recordedAt": self._clock().isoformat(),
                "expirationDate": self._expiry(self.policy.location_data),
            }
        )

    def store_user_query(
        self,
        query: str,
        location: Optional[GeoPoint],
        has_consent: bool,
    ) -> bool:
        """
        Log a search query with consent-aware location handling.

        Without consent the location is anonymized; without consent and
        without a location nothing is stored.

        Returns:
            True if a document was written
        """
        if not has_consent and location is None:
            return False

        query_data: Dict[str, Any] = {
            "query": query,
            "timestamp": self._clock().isoformat(),
            "hasConsent": has_consent,
            "expirationDate": self._expiry(self.policy.query_history),
        }

        if location is not None:
            if has_consent:
                query_data["location"] = location.model_dump()
            else:
                query_data["location"] = self.anonymize_location(location).model_dump()
                query_data["locationAnonymized"] = True
            query_data["locationExpirationDate"] = self._expiry(
                self.policy.location_data
            )

        get_db().collection(USER_QUERIES_COLLECTION).add(query_data)
        return True

    def purge_expired_data(self) -> Dict[str, int]:
        """
        Apply the retention policy.

        Deletes expired query and location-history documents, and strips the
        location from queries whose location expired before the query did.

        Returns:
            Counts of deleted and stripped documents
        """
        db = get_db()
        now = self._clock().isoformat()
        writer = _BatchWriter(db)
        counts = {"queries_deleted": 0, "locations_stripped": 0, "history_deleted": 0}

        queries = db.collection(USER_QUERIES_COLLECTION)
        for doc in queries.where("expirationDate", "<", now).stream():
            writer.delete(doc.reference)
            counts["queries_deleted"] += 1

        for doc in queries.where("locationExpirationDate", "<", now).stream():
            data = doc.to_dict() or {}
            if data.get("expirationDate", "") >= now:
                writer.update(
                    doc.reference,
                    {
                        "location": None,
                        "locationAnonymized": None,
                        "locationExpirationDate": None,
                    },
                )
                counts["locations_stripped"] += 1

        history = db.collection(LOCATION_HISTORY_COLLECTION)
        for doc in history.where("expirationDate", "<", now).stream():
            writer.delete(doc.reference)
            counts["history_deleted"] += 1

        writer.flush()
        logger.info(f"Purged expired data: {counts}")
        return counts

    def _location_history(self, uid: str) -> List[Any]:
        return list(
            get_db()
            .collection(LOCATION_HISTORY_COLLECTION)
            .where("userId", "==", uid)
            .stream()
        )

    def export_user_data(self, principal: TokenClaims) -> Dict[str, Any]:
        """Collect the principal's profile and location history."""
        exported: Dict[str, Any] = {}

        profile = (
            get_db()
            .collection(_profile_collection(principal))
            .document(principal.uid)
            .get()
        )
        if profile.exists:
            exported["profile"] = profile.to_dict()

        exported["locationHistory"] = [
            doc.to_dict() for doc in self._location_history(principal.uid)
        ]
        return exported

    def delete_user_data(self, principal: TokenClaims) -> int:
        """
        Delete the principal's profile and location history in batches,
        then remove the sign-in identity. Deleting a peddler drops the cached
        search pages that may still list it.

        Returns:
            Number of documents deleted
        """
        db = get_db()
        writer = _BatchWriter(db)
        writer.delete(
            db.collection(_profile_collection(principal)).document(principal.uid)
        )
        for doc in self._location_history(principal.uid):
            writer.delete(doc.reference)
        writer.flush()
        delete_identity(principal.uid)
        if _profile_collection(principal) == "peddlers":
            invalidate_search_cache()
        logger.info(f"Deleted personal data for {principal.uid}")
        return writer.committed


router = APIRouter(prefix="/api/user", tags=["data-rights"])


@router.get("/data-rights")
@failure_message("Failed to process data rights request")
async def data_rights_export(
    action: Optional[str] = Query(None),
    principal: TokenClaims = Depends(get_current_principal),
):
    if action != "export":
        raise BadRequestError("Invalid action specified")

    data = DataProtection.get_instance().export_user_data(principal)
    return {"message": "User data exported successfully", "data": data}


@router.delete("/data-rights")
@failure_message("Failed to delete user data")
async def data_rights_delete(principal: TokenClaims = Depends(get_current_principal)):
    DataProtection.get_instance().delete_user_data(principal)
    return {"message": "User data deleted successfully"}
