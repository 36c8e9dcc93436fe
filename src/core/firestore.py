"""Firestore client wrapper used as the pipeline's key-value store."""

from typing import Any

from google.cloud import firestore

from src.config import get_settings


class FirestoreClient:
    """Wrapper for Firestore property operations.

    All properties live as string fields on a single document, so the store
    behaves like a flat string-keyed map shared by both pipeline stages.
    """

    _instance: "FirestoreClient | None" = None
    _db: firestore.Client | None = None

    def __new__(cls) -> "FirestoreClient":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def db(self) -> firestore.Client:
        """Get or create Firestore client."""
        if self._db is None:
            settings = get_settings()
            # Use project from settings if provided, otherwise auto-detect
            project = settings.google_cloud_project if settings.google_cloud_project else None
            self._db = firestore.Client(project=project)
        return self._db

    def _properties_ref(self) -> firestore.DocumentReference:
        settings = get_settings()
        return self.db.collection(settings.state_collection).document(settings.state_document)

    async def set_properties(self, properties: dict[str, str]) -> None:
        """Write properties, overwriting existing keys and keeping the rest."""
        self._properties_ref().set(properties, merge=True)

    async def get_property(self, key: str) -> str | None:
        """Get a single property value."""
        properties = await self.get_properties()
        return properties.get(key)

    async def get_properties(self) -> dict[str, Any]:
        """Get all stored properties."""
        doc = self._properties_ref().get()
        return (doc.to_dict() or {}) if doc.exists else {}


def get_firestore_client() -> FirestoreClient:
    """Get Firestore client instance (dependency injection)."""
    return FirestoreClient()
