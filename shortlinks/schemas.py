from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------- Persisted records ----------
# Aliases are the keys of the stored document (and of the /api/shorts list).

class LinkRecord(BaseModel):
    id: str
    owner_id: str = Field(alias="owner")
    target_url: str = Field(alias="url")
    code: str
    created_at: int = Field(alias="createdAt")
    expires_at: int = Field(alias="expiresAt")
    clicks: int = 0

    model_config = ConfigDict(populate_by_name=True)

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at


class UserRecord(BaseModel):
    id: str
    username: str
    password_hash: str = Field(alias="hash")

    model_config = ConfigDict(populate_by_name=True)


class Document(BaseModel):
    users: list[UserRecord] = Field(default_factory=list)
    shorts: list[LinkRecord] = Field(default_factory=list)


# ---------- API bodies ----------

class Credentials(BaseModel):
    username: str | None = None
    password: str | None = None

class Token(BaseModel):
    token: str

class ShortenIn(BaseModel):
    url: str | None = None
    custom_code: str | None = Field(default=None, alias="customCode")
    # Anything non-numeric falls back to the default TTL, so accept it as-is.
    ttl_seconds: Any = Field(default=None, alias="ttlSeconds")

    model_config = ConfigDict(populate_by_name=True)

class ShortenOut(BaseModel):
    short: str
    code: str
    expires_at: int = Field(serialization_alias="expiresAt")

class LinkList(BaseModel):
    items: list[LinkRecord] = Field(serialization_alias="list")

class QrOut(BaseModel):
    qr_base64: str

class CurrentUser(BaseModel):
    id: str
    username: str
