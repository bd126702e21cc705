"""
Document store for ChronoFlux.

This module provides the document interface the turn pipeline is written
against (get / insert / patch / delete / query) on top of SQLAlchemy and
SQLite. Every operation on :class:`DocumentStore` runs in its own transaction;
:meth:`DocumentStore.transaction` hands out a :class:`StoreTransaction` so a
group of writes commits or rolls back as one unit.
"""

import copy
import os
import time
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, desc, select, update
from sqlalchemy.orm import Session as DBSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chronoflux.db.schema import COLLECTIONS, Base, Game
from chronoflux.schemas.settings import AISettings
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

Document = Dict[str, Any]


def now_ms() -> int:
    """Current time in epoch milliseconds"""
    return int(time.time() * 1000)


def _model_for(collection: str):
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}")


def _to_document(row: Any) -> Document:
    # JSON values are copied so callers never mutate rows held by the session
    return {
        column.name: copy.deepcopy(getattr(row, column.name))
        for column in row.__table__.columns
    }


class Query:
    """
    Lazily evaluated query over one collection.

    ``where`` filters on column equality in SQL, ``filter`` applies an
    arbitrary predicate to the converted documents.
    """

    def __init__(self, collection: str, runner: Callable[[Callable], Any]):
        self.collection = collection
        self.model = _model_for(collection)
        self._runner = runner
        self._equals: Dict[str, Any] = {}
        self._predicates: List[Callable[[Document], bool]] = []
        self._order: Optional[tuple] = None
        self._limit: Optional[int] = None

    def where(self, **equals: Any) -> "Query":
        self._equals.update(equals)
        return self

    def filter(self, predicate: Callable[[Document], bool]) -> "Query":
        self._predicates.append(predicate)
        return self

    def order_by(self, field: str, descending: bool = False) -> "Query":
        self._order = (field, descending)
        return self

    def take(self, n: int) -> List[Document]:
        self._limit = n
        return self.collect()

    def collect(self) -> List[Document]:
        return self._runner(self._execute)

    def first(self) -> Optional[Document]:
        results = self._runner(lambda db: self._execute(db, first_only=True))
        return results[0] if results else None

    def _execute(self, db: DBSession, first_only: bool = False) -> List[Document]:
        query = db.query(self.model)
        for field, value in self._equals.items():
            query = query.filter(getattr(self.model, field) == value)
        if self._order:
            field, descending = self._order
            column = getattr(self.model, field)
            query = query.order_by(desc(column) if descending else column)

        # Limits can only be pushed to SQL when no python predicate follows
        if not self._predicates and (first_only or self._limit is not None):
            query = query.limit(1 if first_only else self._limit)

        documents = [_to_document(row) for row in query.all()]
        for predicate in self._predicates:
            documents = [d for d in documents if predicate(d)]
        if first_only:
            return documents[:1]
        if self._limit is not None:
            documents = documents[: self._limit]
        return documents


class StoreTransaction:
    """Document operations bound to a single database session"""

    def __init__(self, db: DBSession):
        self.db = db

    def get(self, collection: str, doc_id: Optional[str]) -> Optional[Document]:
        if not doc_id:
            return None
        row = self.db.get(_model_for(collection), doc_id)
        return _to_document(row) if row is not None else None

    def insert(self, collection: str, fields: Document) -> str:
        model = _model_for(collection)
        doc_id = fields.get("id") or str(uuid.uuid4())
        values = {k: v for k, v in fields.items() if k != "id"}
        self.db.add(model(id=doc_id, **values))
        self.db.flush()
        logger.debug(f"[Store] Inserted {collection}/{doc_id}")
        return doc_id

    def patch(self, collection: str, doc_id: str, fields: Document) -> bool:
        row = self.db.get(_model_for(collection), doc_id)
        if row is None:
            return False
        for key, value in fields.items():
            if key != "id" and hasattr(row, key):
                setattr(row, key, value)
        self.db.flush()
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        row = self.db.get(_model_for(collection), doc_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True

    def query(self, collection: str) -> Query:
        return Query(collection, lambda fn: fn(self.db))

    def recent_turns(self, game_id: str, n: int) -> List[Document]:
        """Last ``n`` turns of a game, newest first (the by_game_id index path)"""
        return (
            self.query("turns")
            .where(game_id=game_id)
            .order_by("turn_number", descending=True)
            .take(n)
        )

    def advance_turn(
        self, game_id: str, expected_turn: int, fields: Optional[Document] = None
    ) -> bool:
        """
        Move ``current_turn`` from ``expected_turn`` to ``expected_turn + 1``.

        The update is conditional on the counter still holding the expected
        value, so of two writers starting from the same base only one can
        succeed.

        Returns:
            True if the counter was advanced, False if it had already moved
        """
        values = dict(fields or {})
        values["current_turn"] = expected_turn + 1
        values["updated_at"] = now_ms()
        result = self.db.execute(
            update(Game)
            .where(Game.id == game_id, Game.current_turn == expected_turn)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def current_turn(self, game_id: str) -> Optional[int]:
        """Counter value as stored, bypassing the session's cached rows"""
        return self.db.execute(
            select(Game.current_turn).where(Game.id == game_id)
        ).scalar()


class DocumentStore:
    """
    SQLite-backed document store.

    Attributes:
        db_path: Path to the SQLite database file (or ":memory:")
        engine: SQLAlchemy engine
        SessionLocal: Factory for database sessions
    """

    def __init__(self, db_path: str = "data/chronoflux.db"):
        self.db_path = db_path

        if db_path == ":memory:":
            self.engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self.engine = create_engine(
                f"sqlite:///{db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

        logger.info(f"Document store initialized at {db_path}")

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Run a group of operations atomically; roll back on any exception"""
        db: DBSession = self.SessionLocal()
        try:
            yield StoreTransaction(db)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _run(self, fn: Callable[[DBSession], Any]) -> Any:
        with self.transaction() as tx:
            return fn(tx.db)

    def get(self, collection: str, doc_id: Optional[str]) -> Optional[Document]:
        with self.transaction() as tx:
            return tx.get(collection, doc_id)

    def insert(self, collection: str, fields: Document) -> str:
        with self.transaction() as tx:
            return tx.insert(collection, fields)

    def patch(self, collection: str, doc_id: str, fields: Document) -> bool:
        with self.transaction() as tx:
            return tx.patch(collection, doc_id, fields)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self.transaction() as tx:
            return tx.delete(collection, doc_id)

    def query(self, collection: str) -> Query:
        return Query(collection, self._run)

    def recent_turns(self, game_id: str, n: int) -> List[Document]:
        with self.transaction() as tx:
            return tx.recent_turns(game_id, n)


class SettingsStore:
    """
    Persisted key-value AI settings.

    Keys mirror the names the settings are known by in the UI. Values missing
    from the store fall back to the environment configuration.
    """

    KEYS = {
        "provider": "AI_PROVIDER",
        "ollama_url": "OLLAMA_URL",
        "ollama_model": "OLLAMA_MODEL",
        "openrouter_api_key": "OPENROUTER_API_KEY",
        "openrouter_model": "OPENROUTER_MODEL",
        "debug_logging": "DEBUG_LOGGING",
    }

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, key: str) -> Optional[str]:
        doc = self.store.get("settings", key)
        return doc["value"] if doc else None

    def set(self, key: str, value: str) -> None:
        with self.store.transaction() as tx:
            fields = {"value": value, "updated_at": now_ms()}
            if not tx.patch("settings", key, fields):
                tx.insert("settings", {"id": key, **fields})

    def load_ai_settings(self) -> AISettings:
        """Resolve the effective AI settings for one request"""
        values: Dict[str, Any] = AISettings.from_config().model_dump()
        stored = {
            doc["id"]: doc["value"]
            for doc in self.store.query("settings").collect()
        }
        for field, key in self.KEYS.items():
            raw = stored.get(key)
            if raw is None:
                continue
            if field == "debug_logging":
                values[field] = raw.lower() in ("1", "true", "yes", "on")
            elif raw != "" or field == "openrouter_api_key":
                values[field] = raw
        if values["provider"] not in ("ollama", "openrouter"):
            logger.warning(
                f"[Settings] Ignoring unknown provider {values['provider']!r}, using ollama"
            )
            values["provider"] = "ollama"
        return AISettings(**values)

    def save_ai_settings(self, ai_settings: AISettings) -> AISettings:
        data = ai_settings.model_dump()
        with self.store.transaction() as tx:
            for field, key in self.KEYS.items():
                value = data[field]
                if isinstance(value, bool):
                    value = "true" if value else "false"
                fields = {"value": str(value), "updated_at": now_ms()}
                if not tx.patch("settings", key, fields):
                    tx.insert("settings", {"id": key, **fields})
        logger.info(
            f"[Settings] AI settings saved (provider={ai_settings.provider})",
            extra={"component": "Settings", "provider": ai_settings.provider},
        )
        return self.load_ai_settings()

    def reset_ai_settings(self) -> AISettings:
        """Drop stored overrides so the environment defaults apply again"""
        with self.store.transaction() as tx:
            for key in self.KEYS.values():
                tx.delete("settings", key)
        logger.info("[Settings] AI settings reset to defaults")
        return self.load_ai_settings()
