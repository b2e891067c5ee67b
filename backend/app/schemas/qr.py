# backend/app/schemas/qr.py
"""
Schemas for the 115 QR-code login handshake.

The handshake state lives on 115's side; these only carry its identifiers
(uid, sign, time) and the relayed status.
"""
from enum import Enum

from pydantic import BaseModel, Field

from backend.app.schemas.credential import Drive115CookieFields, QRLoginApp


class QRStatus(str, Enum):
    WAITING = "waiting"
    SCANNED = "scanned"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    CANCELED = "canceled"


class QRSession(BaseModel):
    uid: str
    sign: str
    time: int
    # What the scannable image encodes
    qrcode: str


class QRSessionRef(BaseModel):
    uid: str = Field(..., min_length=1, max_length=100)
    sign: str = Field(..., min_length=1, max_length=255)
    time: int = Field(..., gt=0)


class QRStatusResponse(BaseModel):
    status: QRStatus
    message: str


class QRLoginRequest(QRSessionRef):
    app: QRLoginApp = "web"


class QRLoginResponse(BaseModel):
    success: bool
    message: str
    credentials: Drive115CookieFields
