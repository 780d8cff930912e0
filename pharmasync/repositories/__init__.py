"""Repository modules - REST access and persisted client state"""
from .api_client import ApiClient
from .auth_repo import AuthRepository
from .notification_repo import NotificationRepository
from .pharmacy_repo import PharmacyRepository
from .credential_store import CredentialStore, FileCredentialStore, InMemoryCredentialStore

__all__ = [
    "ApiClient",
    "AuthRepository",
    "NotificationRepository",
    "PharmacyRepository",
    "CredentialStore",
    "FileCredentialStore",
    "InMemoryCredentialStore",
]
