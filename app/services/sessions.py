# app/services/sessions.py
"""
Read side of the sync: processing sessions stored in Firestore.

Each document in the sessions collection describes one processing session:

    {
        "timestamp": <Firestore timestamp>,
        "treatments": {"resize": 3, "crop_mouth": 1, "remove_bg": 0},
        "total_images": 4,
    }

Missing counters count as zero. The collection is only ever read.
"""

import json
import logging
from datetime import datetime
from typing import Any, Iterable, Protocol

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account
from pydantic import ValidationError

from app.errors import ConfigError, MalformedSessionRecord, SourceUnavailable
from app.schemas import SessionRecord

logger = logging.getLogger(__name__)


class SessionSource(Protocol):
    def query_sessions_after(self, after: datetime) -> list[SessionRecord]:
        """Return every session with timestamp strictly greater than `after`."""
        ...


def parse_session_document(data: dict[str, Any], doc_id: str | None = None) -> SessionRecord:
    try:
        return SessionRecord.model_validate(data)
    except ValidationError as exc:
        raise MalformedSessionRecord(f"Session document {doc_id or '?'} is invalid: {exc}") from exc


def parse_session_documents(docs: Iterable[tuple[str, dict[str, Any]]]) -> list[SessionRecord]:
    return [parse_session_document(data, doc_id) for doc_id, data in docs]


def build_firestore_client(service_account_json: str | None) -> firestore.Client:
    if not service_account_json:
        raise ConfigError("FIREBASE_SERVICE_ACCOUNT environment variable is required")
    try:
        info = json.loads(service_account_json)
    except json.JSONDecodeError as exc:
        raise ConfigError("FIREBASE_SERVICE_ACCOUNT is not valid JSON") from exc

    credentials = service_account.Credentials.from_service_account_info(info)
    return firestore.Client(project=info.get("project_id"), credentials=credentials)


class FirestoreSessionSource:
    def __init__(self, client: firestore.Client, collection: str = "current_session"):
        self.client = client
        self.collection = collection

    def query_sessions_after(self, after: datetime) -> list[SessionRecord]:
        query = self.client.collection(self.collection).where(
            filter=FieldFilter("timestamp", ">", after)
        )
        try:
            snapshots = list(query.stream())
        except (google_exceptions.GoogleAPICallError, auth_exceptions.GoogleAuthError) as exc:
            raise SourceUnavailable(f"Firestore query on {self.collection} failed: {exc}") from exc

        logger.debug({
            "event": "sessions_fetched",
            "collection": self.collection,
            "after": after.isoformat(),
            "count": len(snapshots),
        })
        return parse_session_documents((snap.id, snap.to_dict() or {}) for snap in snapshots)
