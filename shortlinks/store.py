"""Persistence for the users/shorts document.

A store hands out the whole document. Mutations go through ``transaction()``,
which serializes writers on the store's lock and performs load -> mutate -> save
as one step. Every write rewrites the full document, so each click costs
O(records); that is the scalability limit of this service.
"""
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import select

from shortlinks import config
from shortlinks.database import Base, make_engine, make_session_factory
from shortlinks.models import ShortLinkRow, UserRow
from shortlinks.schemas import Document, LinkRecord, UserRecord

logger = logging.getLogger("shortlinks.store")


class DocumentStore:
    """Base class: subclasses implement ``load`` and ``save``."""

    def __init__(self):
        self._lock = threading.Lock()

    def load(self) -> Document:
        raise NotImplementedError

    def save(self, doc: Document) -> None:
        raise NotImplementedError

    @contextmanager
    def transaction(self) -> Iterator[Document]:
        """Yield the current document under the write lock and save it on exit.

        If the block raises, nothing is written and the exception propagates.
        """
        with self._lock:
            doc = self.load()
            yield doc
            self.save(doc)


class JsonFileStore(DocumentStore):
    def __init__(self, path: Path | str):
        super().__init__()
        self.path = Path(path)

    def load(self) -> Document:
        if not self.path.exists():
            return Document()
        with self.path.open(encoding="utf-8") as fh:
            return Document.model_validate(json.load(fh))

    def save(self, doc: Document) -> None:
        data = doc.model_dump(by_alias=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write next to the target and swap it in, so readers never see half a file.
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


class SqlStore(DocumentStore):
    def __init__(self, database_url: str):
        super().__init__()
        self.engine = make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)
        Base.metadata.create_all(bind=self.engine)

    def load(self) -> Document:
        with self.SessionLocal() as db:
            users = db.scalars(select(UserRow).order_by(UserRow.seq)).all()
            shorts = db.scalars(select(ShortLinkRow).order_by(ShortLinkRow.seq)).all()
            return Document(
                users=[
                    UserRecord(id=u.id, username=u.username, password_hash=u.password_hash)
                    for u in users
                ],
                shorts=[
                    LinkRecord(
                        id=s.id,
                        owner_id=s.owner_id,
                        target_url=s.target_url,
                        code=s.code,
                        created_at=s.created_at,
                        expires_at=s.expires_at,
                        clicks=s.clicks,
                    )
                    for s in shorts
                ],
            )

    def save(self, doc: Document) -> None:
        with self.SessionLocal() as db:
            _sync_rows(db, UserRow, [u.model_dump() for u in doc.users])
            _sync_rows(db, ShortLinkRow, [s.model_dump() for s in doc.shorts])
            db.commit()

    def dispose(self) -> None:
        self.engine.dispose()


def _sync_rows(db, row_cls, items: list[dict]) -> None:
    """Make the table hold exactly ``items``, appending new ones in order."""
    existing = {row.id: row for row in db.scalars(select(row_cls))}
    wanted = set()
    for item in items:
        wanted.add(item["id"])
        row = existing.get(item["id"])
        if row is None:
            db.add(row_cls(**item))
            # flush per row so autoincrement seq follows document order
            db.flush()
            continue
        for key, value in item.items():
            if getattr(row, key) != value:
                setattr(row, key, value)
    for row_id, row in existing.items():
        if row_id not in wanted:
            db.delete(row)


def open_store(backend: str | None = None) -> DocumentStore:
    backend = backend or config.STORE_BACKEND
    if backend == "json":
        logger.info("Using JSON document store at %s", config.DB_FILE)
        return JsonFileStore(config.DB_FILE)
    if backend == "sql":
        logger.info("Using SQL store (%s)", _safe_url(config.DATABASE_URL))
        return SqlStore(config.DATABASE_URL)
    raise RuntimeError(f"Unknown STORE_BACKEND {backend!r} (expected 'json' or 'sql')")


def _safe_url(database_url: str) -> str:
    # never log credentials
    return database_url.split("@")[-1] if "@" in database_url else database_url
