"""Shared FastAPI dependencies.

This module provides:
- get_storage_config: Storage settings resolved from the environment
- get_entry_store: Process-wide entry store (override in tests)
- get_query_service / get_exporter / get_submission_service: Services on top of the store
- require_admin: HTTP Basic guard for the review endpoints
"""

import logging
import secrets
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .config import Settings, get_settings
from .domain.entries.ports.entry_store_port import EntryStorePort
from .domain.entries.query import EntryQueryService
from .infrastructure.export.entry_exporter import EntryExporter
from .infrastructure.storage.filesystem_entry_store import FilesystemEntryStore
from .infrastructure.storage.storage_config import StorageConfig, load_storage_config
from .uploads.service import SubmissionService

logger = logging.getLogger(__name__)

basic_auth = HTTPBasic(auto_error=False, realm="Postcard admin")


def get_storage_config(settings: Settings = Depends(get_settings)) -> StorageConfig:
    return load_storage_config(settings)


@lru_cache()
def get_entry_store() -> EntryStorePort:
    """Get the shared entry store.

    One instance per process so an enabled EntryIndex is actually reused.
    Call get_entry_store.cache_clear() after changing UPLOAD_DIR.
    """
    return FilesystemEntryStore.from_config(load_storage_config())


def get_query_service(store: EntryStorePort = Depends(get_entry_store)) -> EntryQueryService:
    return EntryQueryService(store)


def get_exporter(
    store: EntryStorePort = Depends(get_entry_store),
    queries: EntryQueryService = Depends(get_query_service),
) -> EntryExporter:
    return EntryExporter(store, queries)


def get_submission_service(
    store: EntryStorePort = Depends(get_entry_store),
    settings: Settings = Depends(get_settings),
) -> SubmissionService:
    return SubmissionService(store, settings.upload_limits)


def _matches(supplied: str, expected: Optional[str]) -> bool:
    if not expected:
        return False
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def require_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    settings: Settings = Depends(get_settings),
) -> str:
    """Authenticate a reviewer via HTTP Basic.

    Both comparisons always run so timing does not reveal which half was
    wrong. Without configured credentials every request is refused.

    Returns:
        str: The authenticated user name

    Raises:
        HTTPException 401: If credentials are missing or wrong
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": 'Basic realm="Postcard admin"'},
    )
    if credentials is None:
        raise unauthorized

    user_ok = _matches(credentials.username, settings.ADMIN_USER)
    pass_ok = _matches(credentials.password, settings.ADMIN_PASS)
    if not (user_ok and pass_ok):
        logger.warning("Rejected admin credentials")
        raise unauthorized

    return credentials.username
