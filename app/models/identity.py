import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.db.base import Base


class IdentityUser(Base):
    __tablename__ = "identity_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String)  # one of app.core.permissions.Role, anything else gets no permissions
    tenant_id = Column(String, index=True)  # tenant slug, e.g. "demoitsm"
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


"""
Table identity_users {
  id varchar(36) [pk]
  email varchar [not null, unique]
  password_hash varchar [not null]
  role varchar
  tenant_id varchar
  is_active boolean [default: true]
  last_login timestamp
  created_at timestamp
}
"""


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    jti = Column(String(64), primary_key=True)
    subject_id = Column(String(36), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), server_default=func.now())


class UserModuleOverride(Base):
    """
    Per-user exception to the role's module list. Rows carry either an
    effect ("allow"/"deny") or the older boolean allowed column; when both
    are present allowed wins.
    """
    __tablename__ = "user_module_overrides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String, nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    module = Column(String, nullable=False)  # itsm, control, self_service (self accepted)
    effect = Column(String)
    allowed = Column(Boolean)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
