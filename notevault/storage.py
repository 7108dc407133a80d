"""
Persistence for identities and notes.

Two interchangeable backends:

- ``sqlite``: a file (or ``:memory:``) database, one connection per operation,
  writes serialized behind a lock.
- ``memory``: plain dicts behind a lock, for tests and throwaway runs.

The database handle is built once by ``open_storage`` and injected into the
repositories; nothing here is module-global. Repositories are the only code
that ever reads a password hash.
"""

import contextlib
import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple

from .domain import Identity, Note
from .errors import DuplicateError
from .log import get_logger
from .query import NoteQuery

logger = get_logger(__name__)

DUPLICATE_EMAIL_MESSAGE = "User already exists with this email"


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


# -------------------------------
# Repository interfaces
# -------------------------------

class UserRepository(ABC):
    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Identity]: ...

    @abstractmethod
    def get_by_id(self, identity_id: str) -> Optional[Identity]: ...

    @abstractmethod
    def get_password_hash(self, identity_id: str) -> Optional[str]: ...

    @abstractmethod
    def add(self, identity: Identity, password_hash: str) -> Identity:
        """Persist a new identity. Raises DuplicateError if the email is taken."""


class NoteRepository(ABC):
    @abstractmethod
    def add(self, note: Note) -> Note: ...

    @abstractmethod
    def get(self, owner_id: str, note_id: str) -> Optional[Note]: ...

    @abstractmethod
    def find(self, query: NoteQuery) -> List[Note]:
        """Notes matching ``query``, most recently updated first."""

    @abstractmethod
    def save(self, note: Note) -> bool:
        """Write back an existing note. False if it is gone or owned by someone else."""

    @abstractmethod
    def remove(self, owner_id: str, note_id: str) -> bool: ...

    @abstractmethod
    def tags(self, owner_id: str) -> List[List[str]]:
        """Tag lists of every note the owner has."""


# -------------------------------
# SQLite backend
# -------------------------------

class SQLiteDatabase:
    """Owns the SQLite file and the write lock shared by both repositories."""

    def __init__(self, path: str = "notevault.db"):
        self.path = path
        self.lock = threading.RLock()
        # A private in-memory database only lives as long as its connection.
        self._shared = None
        if path == ":memory:":
            self._shared = sqlite3.connect(path, check_same_thread=False)
            self._shared.execute("PRAGMA foreign_keys=ON;")
        self._init_schema()

    @contextlib.contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        if self._shared is not None:
            with self.lock:
                yield self._shared
            return
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self.connection() as conn:
            conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS notes (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT UNIQUE NOT NULL,
                user_id TEXT NOT NULL REFERENCES users (id),
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                tags TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_notes_user_updated ON notes (user_id, updated_at DESC);
            """)
            conn.commit()

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None


class SQLiteUserRepository(UserRepository):
    _COLUMNS = "id, name, email, created_at"

    def __init__(self, db: SQLiteDatabase):
        self.db = db

    @staticmethod
    def _row_to_identity(row: Tuple) -> Identity:
        identity_id, name, email, created_at = row
        return Identity(identity_id, name, email, datetime.fromisoformat(created_at))

    def _fetch_one(self, where: str, value: str) -> Optional[Identity]:
        with self.db.connection() as conn:
            row = conn.execute(f"SELECT {self._COLUMNS} FROM users WHERE {where} = ?", (value,)).fetchone()
        return self._row_to_identity(row) if row else None

    def get_by_email(self, email: str) -> Optional[Identity]:
        return self._fetch_one("email", email)

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        return self._fetch_one("id", identity_id)

    def get_password_hash(self, identity_id: str) -> Optional[str]:
        with self.db.connection() as conn:
            row = conn.execute("SELECT password_hash FROM users WHERE id = ?", (identity_id,)).fetchone()
        return row[0] if row else None

    def add(self, identity: Identity, password_hash: str) -> Identity:
        with self.db.lock, self.db.connection() as conn:
            try:
                conn.execute(
                    "INSERT INTO users (id, name, email, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
                    (identity.id, identity.name, identity.email, password_hash, _ts(identity.created_at)),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                conn.rollback()
                raise DuplicateError(DUPLICATE_EMAIL_MESSAGE)
        return identity


class SQLiteNoteRepository(NoteRepository):
    _COLUMNS = "id, user_id, title, content, tags, created_at, updated_at"

    def __init__(self, db: SQLiteDatabase):
        self.db = db

    @staticmethod
    def _row_to_note(row: Tuple) -> Note:
        note_id, owner_id, title, content, tags, created_at, updated_at = row
        return Note(note_id, owner_id, title, content, json.loads(tags),
                    datetime.fromisoformat(created_at), datetime.fromisoformat(updated_at))

    def _write(self, sql: str, params: Tuple) -> int:
        with self.db.lock, self.db.connection() as conn:
            try:
                cursor = conn.execute(sql, params)
                conn.commit()
                return cursor.rowcount
            except sqlite3.Error:
                conn.rollback()
                raise

    def add(self, note: Note) -> Note:
        self._write(
            "INSERT INTO notes (id, user_id, title, content, tags, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (note.id, note.owner_id, note.title, note.content, json.dumps(note.tags),
             _ts(note.created_at), _ts(note.updated_at)),
        )
        return note

    def get(self, owner_id: str, note_id: str) -> Optional[Note]:
        with self.db.connection() as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM notes WHERE user_id = ? AND id = ?",
                (owner_id, note_id),
            ).fetchone()
        return self._row_to_note(row) if row else None

    def find(self, query: NoteQuery) -> List[Note]:
        with self.db.connection() as conn:
            rows = conn.execute(
                f"SELECT {self._COLUMNS} FROM notes WHERE user_id = ? ORDER BY updated_at DESC, seq DESC",
                (query.owner_id,),
            ).fetchall()
        return [note for note in map(self._row_to_note, rows) if query.matches(note)]

    def save(self, note: Note) -> bool:
        return self._write(
            "UPDATE notes SET title = ?, content = ?, tags = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            (note.title, note.content, json.dumps(note.tags), _ts(note.updated_at), note.id, note.owner_id),
        ) > 0

    def remove(self, owner_id: str, note_id: str) -> bool:
        return self._write("DELETE FROM notes WHERE user_id = ? AND id = ?", (owner_id, note_id)) > 0

    def tags(self, owner_id: str) -> List[List[str]]:
        with self.db.connection() as conn:
            rows = conn.execute("SELECT tags FROM notes WHERE user_id = ?", (owner_id,)).fetchall()
        return [json.loads(row[0]) for row in rows]


# -------------------------------
# In-memory backend
# -------------------------------

class MemoryDatabase:
    """Dict-backed storage. Notes are kept per owner in insertion order."""

    def __init__(self):
        self.lock = threading.RLock()
        self.users: Dict[str, Tuple[Identity, str]] = {}
        self.emails: Dict[str, str] = {}
        self.notes: Dict[str, Dict[str, Note]] = {}

    def close(self) -> None:
        with self.lock:
            self.users.clear()
            self.emails.clear()
            self.notes.clear()


def _copy_note(note: Note) -> Note:
    return Note(note.id, note.owner_id, note.title, note.content, note.tags,
                note.created_at, note.updated_at)


class MemoryUserRepository(UserRepository):
    def __init__(self, db: MemoryDatabase):
        self.db = db

    def get_by_email(self, email: str) -> Optional[Identity]:
        with self.db.lock:
            identity_id = self.db.emails.get(email)
            return self.db.users[identity_id][0] if identity_id else None

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        with self.db.lock:
            record = self.db.users.get(identity_id)
            return record[0] if record else None

    def get_password_hash(self, identity_id: str) -> Optional[str]:
        with self.db.lock:
            record = self.db.users.get(identity_id)
            return record[1] if record else None

    def add(self, identity: Identity, password_hash: str) -> Identity:
        with self.db.lock:
            if identity.email in self.db.emails:
                raise DuplicateError(DUPLICATE_EMAIL_MESSAGE)
            self.db.users[identity.id] = (identity, password_hash)
            self.db.emails[identity.email] = identity.id
        return identity


class MemoryNoteRepository(NoteRepository):
    def __init__(self, db: MemoryDatabase):
        self.db = db

    def add(self, note: Note) -> Note:
        with self.db.lock:
            self.db.notes.setdefault(note.owner_id, {})[note.id] = _copy_note(note)
        return note

    def get(self, owner_id: str, note_id: str) -> Optional[Note]:
        with self.db.lock:
            note = self.db.notes.get(owner_id, {}).get(note_id)
            return _copy_note(note) if note else None

    def find(self, query: NoteQuery) -> List[Note]:
        with self.db.lock:
            # Newest insertion first so the stable sort breaks updated_at ties the same way SQLite does.
            candidates = [_copy_note(n) for n in reversed(self.db.notes.get(query.owner_id, {}).values())]
        matched = [note for note in candidates if query.matches(note)]
        return sorted(matched, key=lambda note: note.updated_at, reverse=True)

    def save(self, note: Note) -> bool:
        with self.db.lock:
            owned = self.db.notes.get(note.owner_id, {})
            if note.id not in owned:
                return False
            owned[note.id] = _copy_note(note)
            return True

    def remove(self, owner_id: str, note_id: str) -> bool:
        with self.db.lock:
            return self.db.notes.get(owner_id, {}).pop(note_id, None) is not None

    def tags(self, owner_id: str) -> List[List[str]]:
        with self.db.lock:
            return [list(note.tags) for note in self.db.notes.get(owner_id, {}).values()]


# -------------------------------
# Factory
# -------------------------------

class Storage:
    """The database handle together with the repositories built on it."""

    def __init__(self, backend: str, database, users: UserRepository, notes: NoteRepository):
        self.backend = backend
        self.database = database
        self.users = users
        self.notes = notes

    def close(self) -> None:
        self.database.close()
        logger.info("storage_closed", backend=self.backend)


def open_storage(backend: str = "sqlite", path: str = "notevault.db") -> Storage:
    if backend == "sqlite":
        db = SQLiteDatabase(path)
        storage = Storage(backend, db, SQLiteUserRepository(db), SQLiteNoteRepository(db))
    elif backend == "memory":
        db = MemoryDatabase()
        storage = Storage(backend, db, MemoryUserRepository(db), MemoryNoteRepository(db))
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
    logger.info("storage_opened", backend=backend, path=path if backend == "sqlite" else None)
    return storage
