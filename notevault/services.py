import secrets
from datetime import timedelta
from typing import Any, Dict, List, Optional

from .config import Settings
from .domain import Identity, Note
from .errors import AuthenticationError, DuplicateError, NotFoundError, ValidationError
from .log import get_logger
from .query import NoteQuery
from .storage import DUPLICATE_EMAIL_MESSAGE, NoteRepository, Storage, UserRepository, open_storage
from .tokens import TokenService
from .utils import hash_password, make_id, time_now, verify_password

logger = get_logger(__name__)

NOT_AUTHORIZED = "Not authorized to access this route"
INVALID_CREDENTIALS = "Invalid email or password"
NOTE_NOT_FOUND = "Note not found"
USER_NOT_FOUND = "User not found"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """Identity records plus the password hash/compare capability."""

    def __init__(self, users: UserRepository, hash_iterations: int):
        self.users = users
        self.hash_iterations = hash_iterations
        # Compared against when the email is unknown so both login paths pay for one hash.
        self._dummy_hash = hash_password(secrets.token_urlsafe(16), hash_iterations)

    def find_by_email(self, email: str) -> Optional[Identity]:
        return self.users.get_by_email(normalize_email(email))

    def find_by_id(self, identity_id: str) -> Optional[Identity]:
        return self.users.get_by_id(identity_id)

    def hash_password(self, password: str) -> str:
        return hash_password(password, self.hash_iterations)

    def create(self, name: str, email: str, password_hash: str) -> Identity:
        """Persist a new identity; the repository raises DuplicateError for a taken email."""
        identity = Identity(make_id("usr"), name.strip(), normalize_email(email), time_now())
        return self.users.add(identity, password_hash)

    def verify_password(self, identity: Optional[Identity], plaintext: str) -> bool:
        """Compare ``plaintext`` with the stored hash. A missing identity still runs one full compare."""
        stored = self.users.get_password_hash(identity.id) if identity is not None else None
        if stored is None:
            verify_password(plaintext, self._dummy_hash)
            return False
        return verify_password(plaintext, stored)


class AuthService:
    """Registration, login and bearer-token authentication."""

    def __init__(self, credentials: CredentialStore, tokens: TokenService, password_min_length: int = 6):
        self.credentials = credentials
        self.tokens = tokens
        self.password_min_length = password_min_length

    def _session(self, identity: Identity) -> Dict[str, Any]:
        return {"user": identity.to_dict(), "token": self.tokens.issue(identity.id)}

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        if not (name or "").strip() or not (email or "").strip() or not password:
            raise ValidationError("Please provide name, email, and password")
        if len(password) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters", field="password"
            )
        if self.credentials.find_by_email(email) is not None:
            raise DuplicateError(DUPLICATE_EMAIL_MESSAGE)

        identity = self.credentials.create(name, email, self.credentials.hash_password(password))
        logger.info("user_registered", user_id=identity.id)
        return self._session(identity)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        if not (email or "").strip() or not password:
            raise ValidationError("Please provide email and password")

        identity = self.credentials.find_by_email(email)
        # Unknown email and wrong password must look identical to the caller.
        if not self.credentials.verify_password(identity, password):
            logger.info("login_failed", reason="unknown_email" if identity is None else "bad_password")
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("login_succeeded", user_id=identity.id)
        return self._session(identity)

    def me(self, identity_id: str) -> Identity:
        identity = self.credentials.find_by_id(identity_id)
        if identity is None:
            raise NotFoundError(USER_NOT_FOUND)
        return identity

    def authenticate(self, authorization: Optional[str]) -> Identity:
        """
        Resolve the identity behind an ``Authorization: Bearer <token>`` header.

        Every failure (missing header, wrong scheme, bad or expired token,
        deleted account, store error) raises the same AuthenticationError.
        The specific reason is only logged.
        """
        try:
            scheme, _, token = (authorization or "").strip().partition(" ")
            token = token.strip()
            if scheme.lower() != "bearer" or not token:
                return self._reject("missing_bearer_token")

            identity_id = self.tokens.verify(token)
            if identity_id is None:
                return self._reject("invalid_token")

            identity = self.credentials.find_by_id(identity_id)
            if identity is None:
                return self._reject("unknown_identity")
            return identity
        except AuthenticationError:
            raise
        except Exception:
            logger.exception("authentication_error")
            raise AuthenticationError(NOT_AUTHORIZED)

    @staticmethod
    def _reject(reason: str):
        logger.info("request_rejected", reason=reason)
        raise AuthenticationError(NOT_AUTHORIZED)


class NoteStore:
    """Owner-scoped note operations. A note owned by someone else does not exist."""

    def __init__(self, notes: NoteRepository, max_tags: int = 10):
        self.notes = notes
        self.max_tags = max_tags

    def _check_tags(self, tags: List[str]) -> List[str]:
        if len(tags) > self.max_tags:
            raise ValidationError(f"A note can have at most {self.max_tags} tags", field="tags")
        return list(tags)

    def create(self, owner_id: str, title: str, content: str, tags: Optional[List[str]] = None) -> Note:
        if not title or not content:
            raise ValidationError("Please provide title and content")
        now = time_now()
        note = Note(make_id("note"), owner_id, title, content, self._check_tags(tags or []), now, now)
        self.notes.add(note)
        logger.info("note_created", note_id=note.id, user_id=owner_id)
        return note

    def list(self, owner_id: str, search: str = "", tag: str = "") -> List[Note]:
        return self.notes.find(NoteQuery(owner_id, search=search, tag=tag))

    def get(self, note_id: str, owner_id: str) -> Note:
        note = self.notes.get(owner_id, note_id)
        if note is None:
            raise NotFoundError(NOTE_NOT_FOUND)
        return note

    def update(self, note_id: str, owner_id: str, title: Optional[str] = None,
               content: Optional[str] = None, tags: Optional[List[str]] = None) -> Note:
        """Change only the fields that were supplied; the rest keep their value."""
        note = self.get(note_id, owner_id)
        if title is None and content is None and tags is None:
            return note
        if title is not None:
            if not title:
                raise ValidationError("Title cannot be empty", field="title")
            note.title = title
        if content is not None:
            if not content:
                raise ValidationError("Content cannot be empty", field="content")
            note.content = content
        if tags is not None:
            note.tags = self._check_tags(tags)
        note.updated_at = time_now()

        # The note may have been deleted between the read and the write.
        if not self.notes.save(note):
            raise NotFoundError(NOTE_NOT_FOUND)
        logger.info("note_updated", note_id=note_id, user_id=owner_id)
        return note

    def delete(self, note_id: str, owner_id: str) -> Dict[str, str]:
        if not self.notes.remove(owner_id, note_id):
            raise NotFoundError(NOTE_NOT_FOUND)
        logger.info("note_deleted", note_id=note_id, user_id=owner_id)
        return {"id": note_id}

    def distinct_tags(self, owner_id: str) -> List[str]:
        return sorted({tag for tags in self.notes.tags(owner_id) for tag in tags})


class Services:
    """Every long-lived object the API needs, built once and closed at shutdown."""

    def __init__(self, settings: Settings, storage: Optional[Storage] = None):
        self.settings = settings
        self.storage = storage or open_storage(settings.STORAGE_BACKEND, settings.DATABASE_PATH)
        self.tokens = TokenService(settings.SECRET_KEY, ttl=timedelta(days=settings.TOKEN_TTL_DAYS))
        self.credentials = CredentialStore(self.storage.users, settings.PASSWORD_HASH_ITERATIONS)
        self.auth = AuthService(self.credentials, self.tokens, settings.PASSWORD_MIN_LENGTH)
        self.notes = NoteStore(self.storage.notes, settings.MAX_TAGS)

    def close(self) -> None:
        self.storage.close()
