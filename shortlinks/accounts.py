"""Credential store: usernames with salted bcrypt hashes, kept in the same
document as the links."""
import bcrypt

from shortlinks import config
from shortlinks.errors import AuthenticationError, ConflictError, ValidationError
from shortlinks.registry import generate_code
from shortlinks.schemas import UserRecord
from shortlinks.store import DocumentStore

MIN_USERNAME_LENGTH = 3
# matches the users.username column
MAX_USERNAME_LENGTH = 150
MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = config.BCRYPT_ROUNDS) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


class CredentialStore:
    def __init__(self, store: DocumentStore, rounds: int = config.BCRYPT_ROUNDS):
        self.store = store
        self.rounds = rounds

    def register(self, username: str | None, password: str | None) -> UserRecord:
        if not username or not password:
            raise ValidationError("Username and password required")
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError("Username too short")
        if len(username) > MAX_USERNAME_LENGTH:
            raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} chars")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} chars")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        # hash outside the lock
        password_hash = hash_password(password, self.rounds)
        with self.store.transaction() as doc:
            if any(u.username == username for u in doc.users):
                raise ConflictError("Username already taken")
            user = UserRecord(id=generate_code(21), username=username, password_hash=password_hash)
            doc.users.append(user)
        return user.model_copy()

    def authenticate(self, username: str | None, password: str | None) -> UserRecord:
        if not username or not password:
            raise ValidationError("Username and password required")
        user = next((u for u in self.store.load().users if u.username == username), None)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError()
        return user
