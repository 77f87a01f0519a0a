from sqlalchemy import BigInteger, Column, Integer, String

from shortlinks.database import Base


class UserRow(Base):
    __tablename__ = "users"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False)
    username = Column(String(150), unique=True, nullable=False)
    password_hash = Column(String(128), nullable=False)


class ShortLinkRow(Base):
    __tablename__ = "short_links"

    # seq keeps the document's insertion order on load
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False)
    owner_id = Column(String(32), index=True, nullable=False)
    target_url = Column(String(2048), nullable=False)
    code = Column(String(64), unique=True, index=True, nullable=False)
    created_at = Column(BigInteger, nullable=False)
    expires_at = Column(BigInteger, nullable=False)
    clicks = Column(Integer, nullable=False, default=0)
