# backend/app/models/credential.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Index, true
from sqlalchemy.sql import func

from backend.app.db.base import Base


class Drive115Credential(Base):
    __tablename__ = "drive115_credentials"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    # Label shown in the UI, e.g. "main account"
    name = Column(String(255), nullable=False)

    # --- 115 cookie fields (sensitive, owner-only) ---
    uid = Column(String(100), nullable=False)
    cid = Column(String(100), nullable=False)
    seid = Column(String(100), nullable=False)
    kid = Column(String(100), nullable=False)

    is_active = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        # At most one active credential per user
        Index(
            "uq_drive115_credentials_one_active",
            "user_id",
            unique=True,
            sqlite_where=is_active == true(),
            postgresql_where=is_active == true(),
        ),
    )

    def cookie_fields(self) -> dict:
        return {"uid": self.uid, "cid": self.cid, "seid": self.seid, "kid": self.kid}

    def __repr__(self) -> str:
        # Cookie values stay out of reprs and therefore out of logs
        return (
            f"<Drive115Credential id={self.id} user_id={self.user_id} "
            f"name={self.name!r} is_active={self.is_active}>"
        )
