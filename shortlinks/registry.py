"""Link registry: allocates short codes and resolves them to their targets.

The registry is the only reader/writer of the ``shorts`` collection. Writes
(create, resolve) run inside ``store.transaction()`` so they are serialized
against each other and against account writes on the same store.
"""
import math
import re
import secrets
import string
import time
from typing import Any, Callable

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as UrlValidationError

from shortlinks import config
from shortlinks.errors import ConflictError, ExhaustedError, ExpiredError, NotFoundError, ValidationError
from shortlinks.schemas import LinkRecord
from shortlinks.store import DocumentStore

# URL-safe alphabet, 64 symbols
ALPHABET = string.ascii_letters + string.digits + "_-"

CODE_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")
MAX_URL_LENGTH = 2048

_any_url = TypeAdapter(AnyUrl)

# Single path segments the web app serves itself; a code here could never be reached.
RESERVED_CODES = {"api", "health", "config", "docs", "redoc", "openapi.json", "favicon.ico"}


def generate_code(length: int = 7) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def now_ms() -> int:
    return int(time.time() * 1000)


def is_absolute_url(url: str) -> bool:
    # the URL parser silently drops embedded tabs and newlines, so reject whitespace first
    if any(ch.isspace() for ch in url):
        return False
    try:
        _any_url.validate_python(url)
    except UrlValidationError:
        return False
    return True


def coerce_ttl(ttl_seconds: Any, default: int, maximum: int = config.MAX_TTL_SECONDS) -> float:
    """Positive number of seconds, or ``default`` for anything non-numeric.

    Raises ValidationError above ``maximum`` so expiry stays a 64-bit integer.
    """
    if ttl_seconds is None or isinstance(ttl_seconds, bool):
        return default
    try:
        ttl = float(ttl_seconds)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(ttl) or ttl <= 0:
        return default
    if ttl > maximum:
        raise ValidationError(f"ttlSeconds must be at most {maximum}")
    return ttl


class LinkRegistry:
    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], int] = now_ms,
        default_ttl: int = config.DEFAULT_TTL_SECONDS,
        code_length: int = config.CODE_LENGTH,
        max_attempts: int = config.CODE_MAX_ATTEMPTS,
        max_ttl: int = config.MAX_TTL_SECONDS,
    ):
        self.store = store
        self.clock = clock
        self.default_ttl = default_ttl
        self.code_length = code_length
        self.max_attempts = max_attempts
        self.max_ttl = max_ttl

    def create_link(
        self,
        owner_id: str,
        target_url: str | None,
        custom_code: str | None = None,
        ttl_seconds: Any = None,
    ) -> LinkRecord:
        if not owner_id:
            raise ValidationError("Owner required")
        if not target_url:
            raise ValidationError("URL required")
        if not isinstance(target_url, str):
            raise ValidationError("URL must be a string")
        if len(target_url) > MAX_URL_LENGTH:
            raise ValidationError(f"URL is too long (max {MAX_URL_LENGTH} characters)")
        if not is_absolute_url(target_url):
            raise ValidationError("Invalid URL")
        if custom_code:
            validate_code(custom_code)
        ttl = coerce_ttl(ttl_seconds, self.default_ttl, self.max_ttl)

        with self.store.transaction() as doc:
            taken = {s.code for s in doc.shorts}
            if custom_code:
                if custom_code in taken:
                    raise ConflictError("Code already in use")
                code = custom_code
            else:
                code = self._allocate(taken)

            now = self.clock()
            # at least 1ms so expiry always lies after creation
            ttl_ms = max(1, int(ttl * 1000))
            record = LinkRecord(
                id=generate_code(21),
                owner_id=owner_id,
                target_url=target_url,
                code=code,
                created_at=now,
                expires_at=now + ttl_ms,
                clicks=0,
            )
            doc.shorts.append(record)
        return record.model_copy()

    def _allocate(self, taken: set[str]) -> str:
        for _ in range(self.max_attempts):
            code = generate_code(self.code_length)
            if code not in taken and code.lower() not in RESERVED_CODES:
                return code
        raise ExhaustedError()

    def list_by_owner(self, owner_id: str) -> list[LinkRecord]:
        return [s for s in self.store.load().shorts if s.owner_id == owner_id]

    def lookup(self, code: str) -> LinkRecord:
        for s in self.store.load().shorts:
            if s.code == code:
                return s
        raise NotFoundError()

    def resolve_and_hit(self, code: str) -> str:
        """Return the target of ``code`` and count the visit.

        Raises NotFoundError for unknown codes and ExpiredError once the
        link's TTL has passed; neither case touches the click counter.
        """
        with self.store.transaction() as doc:
            entry = next((s for s in doc.shorts if s.code == code), None)
            if entry is None:
                raise NotFoundError()
            if entry.is_expired(self.clock()):
                raise ExpiredError()
            entry.clicks += 1
            return entry.target_url


def validate_code(code: str) -> None:
    if not isinstance(code, str) or not CODE_RE.fullmatch(code):
        raise ValidationError("Code may only contain letters, digits, '_' or '-' (max 64)")
    if code.lower() in RESERVED_CODES:
        raise ValidationError("This code is reserved")
