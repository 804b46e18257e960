"""
Per-tenant database management.

Every tenant (application user) owns an isolated SQLite database file. The
``TenantDatabaseManager`` lazily opens those databases on first access and
caches one live ``TenantStore`` per tenant identifier for the life of the
process.
"""

import logging
import os
import re
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .settings import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

_TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]{1,128}$")


def validate_tenant_id(tenant_id: str) -> str:
    """
    Validate a tenant identifier before it is used as a file name.

    Args:
        tenant_id: Identifier of the tenant

    Returns:
        The validated identifier

    Raises:
        ValueError: If the identifier is empty or contains unsafe characters
    """
    if (
        not isinstance(tenant_id, str)
        or not _TENANT_ID_PATTERN.match(tenant_id)
        or tenant_id in (".", "..")
    ):
        raise ValueError(f"Invalid tenant identifier: {tenant_id!r}")
    return tenant_id


class TenantStore:
    """
    Handle on one tenant's database.

    Wraps the SQLAlchemy engine and session factory for a single tenant and
    provides a transactional session context manager.
    """

    def __init__(self, tenant_id: str, engine: Engine):
        self.tenant_id = tenant_id
        self.engine = engine
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Context manager for tenant database sessions.

        Commits when the block exits normally, rolls back and re-raises when
        it raises.

        Usage:
            with store.session() as db:
                db.add(record)
        """
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"<TenantStore(tenant_id='{self.tenant_id}', url='{self.engine.url}')>"


class TenantDatabaseManager:
    """
    Registry of open tenant databases.

    Tenant stores are created lazily on first access. Creation is guarded by
    a lock with a second lookup inside it, so concurrent first requests for
    the same tenant share one store. Stores are never evicted automatically.
    """

    def __init__(self, data_dir: Optional[str] = None):
        """
        Initialize the manager.

        Args:
            data_dir: Directory for tenant database files (defaults to settings)
        """
        self.data_dir = data_dir or settings.data_dir
        self._stores: Dict[str, TenantStore] = {}
        self._lock = threading.Lock()

    def db_path(self, tenant_id: str) -> str:
        """Return the database file path for a tenant."""
        validate_tenant_id(tenant_id)
        return os.path.join(self.data_dir, f"{tenant_id}.db")

    def tenant_db_exists(self, tenant_id: str) -> bool:
        """Check whether a tenant database file exists on disk."""
        return os.path.exists(self.db_path(tenant_id))

    def get(self, tenant_id: str) -> Optional[TenantStore]:
        """Return the open store for a tenant without creating it."""
        with self._lock:
            return self._stores.get(tenant_id)

    def get_or_create(self, tenant_id: str) -> TenantStore:
        """
        Return the store for a tenant, opening it on first access.

        Args:
            tenant_id: Identifier of the tenant

        Returns:
            TenantStore: The tenant's live store

        Raises:
            ValueError: If the tenant identifier is invalid
        """
        store = self.get(tenant_id)
        if store is not None:
            return store

        with self._lock:
            # Another thread may have opened it while we waited
            store = self._stores.get(tenant_id)
            if store is not None:
                return store

            store = self._open_store(tenant_id)
            self._stores[tenant_id] = store
            return store

    def open_tenants(self) -> Dict[str, TenantStore]:
        """Return a snapshot of all currently open tenant stores."""
        with self._lock:
            return dict(self._stores)

    def close(self, tenant_id: str) -> None:
        """Close a single tenant store if it is open."""
        with self._lock:
            store = self._stores.pop(tenant_id, None)

        if store is not None:
            store.close()
            logger.info(f"Closed database for tenant {tenant_id}")

    def close_all(self) -> None:
        """Close every open tenant store."""
        with self._lock:
            stores = list(self._stores.items())
            self._stores.clear()

        for tenant_id, store in stores:
            try:
                store.close()
            except Exception as e:
                logger.warning(f"Failed to close database for tenant {tenant_id}: {e}")

        logger.info(f"Closed {len(stores)} tenant databases")

    def _open_store(self, tenant_id: str) -> TenantStore:
        """
        Open (and migrate) the database file for a tenant.

        Must be called with the manager lock held.
        """
        path = self.db_path(tenant_id)
        os.makedirs(self.data_dir, exist_ok=True)

        engine = create_engine(
            f"sqlite:///{path}",
            connect_args={"check_same_thread": False},
        )

        # Register all models with Base.metadata before creating tables
        from socgate import models  # noqa: F401

        Base.metadata.create_all(engine)
        logger.info(f"Opened database for tenant {tenant_id} at {path}")

        return TenantStore(tenant_id, engine)

    def open_existing(self) -> int:
        """
        Open every tenant database already present in the data directory.

        Used at startup so that jobs scheduled before a restart are polled
        again without waiting for the tenant's next request.

        Returns:
            Number of tenant stores opened
        """
        if not os.path.isdir(self.data_dir):
            return 0

        opened = 0
        for filename in sorted(os.listdir(self.data_dir)):
            if not filename.endswith(".db"):
                continue

            tenant_id = filename[: -len(".db")]
            try:
                validate_tenant_id(tenant_id)
            except ValueError:
                logger.warning(f"Skipping database file with invalid tenant id: {filename}")
                continue

            self.get_or_create(tenant_id)
            opened += 1

        logger.info(f"Opened {opened} existing tenant databases from {self.data_dir}")
        return opened
