# backend/app/schemas/credential.py
"""
Schemas for stored 115 credentials.

The four cookie fields are only ever returned to the owning user.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Non-empty, no whitespace
DRIVE115_ID_PATTERN = r"^\S+$"

QRLoginApp = Literal["web", "android", "ios", "tv", "alipaymini", "wechatmini", "qandroid"]


class Drive115CookieFields(BaseModel):
    """The opaque identity bundle the 115 API authenticates with."""

    uid: str = Field(..., min_length=1, max_length=100, pattern=DRIVE115_ID_PATTERN)
    cid: str = Field(..., min_length=1, max_length=100, pattern=DRIVE115_ID_PATTERN)
    seid: str = Field(..., min_length=1, max_length=100, pattern=DRIVE115_ID_PATTERN)
    kid: str = Field(..., min_length=1, max_length=100, pattern=DRIVE115_ID_PATTERN)


class CredentialCreate(Drive115CookieFields):
    name: str = Field(..., min_length=1, max_length=255)
    # New credentials start inactive unless the caller asks otherwise
    activate: bool = False


class CredentialUpdate(Drive115CookieFields):
    name: str = Field(..., min_length=1, max_length=255)


class CredentialActiveUpdate(BaseModel):
    is_active: bool


class CredentialFromQR(BaseModel):
    """Complete a confirmed QR login and store the result in one call."""
    uid: str = Field(..., min_length=1, max_length=100)
    sign: str = Field(..., min_length=1, max_length=255)
    time: int = Field(..., gt=0)
    app: QRLoginApp = "web"
    name: str = Field(..., min_length=1, max_length=255)
    activate: bool = False


class CredentialResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    uid: str
    cid: str
    seid: str
    kid: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CredentialSummary(BaseModel):
    id: int
    name: str
    is_active: bool
    message: str


class CredentialActiveResponse(BaseModel):
    message: str
    is_active: bool
