# backend/app/services/qr_login.py
"""
QR Login Broker for the 115 out-of-band login.

Flow (all state lives on 115's side, this module only relays it):

    start()  ->  show fetch_display_image(uid)  ->  poll() until terminal
             ->  complete() once the status is CONFIRMED

Status progression is WAITING -> SCANNED -> CONFIRMED, with EXPIRED and
CANCELED as absorbing failures. ``complete`` re-reads the status itself and
refuses to exchange anything that is not CONFIRMED, so it never yields
partial credentials.
"""
import io
import logging
from typing import Any, Dict, Optional

import httpx
import qrcode
from pydantic import ValidationError

from backend.app.core.config import Settings
from backend.app.core.errors import QRLoginFailedError, UpstreamError
from backend.app.schemas.credential import Drive115CookieFields
from backend.app.schemas.qr import QRSession, QRStatus, QRStatusResponse

logger = logging.getLogger(__name__)

API_QRCODE_TOKEN = "https://qrcodeapi.115.com/api/1.0/web/1.0/token/"
API_QRCODE_STATUS = "https://qrcodeapi.115.com/get/status/"
API_QRCODE_LOGIN = "https://passportapi.115.com/app/1.0/{app}/1.0/login/qrcode/"

STATUS_CODES = {
    0: QRStatus.WAITING,
    1: QRStatus.SCANNED,
    2: QRStatus.CONFIRMED,
    -1: QRStatus.EXPIRED,
    -2: QRStatus.CANCELED,
}

STATUS_MESSAGES = {
    QRStatus.WAITING: "Waiting for the QR code to be scanned",
    QRStatus.SCANNED: "QR code scanned, waiting for confirmation in the 115 app",
    QRStatus.CONFIRMED: "Login confirmed, credentials can now be retrieved",
    QRStatus.EXPIRED: "QR code expired, start a new login",
    QRStatus.CANCELED: "Login was canceled in the 115 app",
}


def render_qr_png(data: str) -> bytes:
    """Encode ``data`` as a PNG QR code."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class QRLoginBroker:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": self._settings.UPSTREAM_USER_AGENT},
            timeout=httpx.Timeout(self._settings.UPSTREAM_TIMEOUT_SECONDS),
            transport=self._transport,
        )

    async def _call(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as exc:
            raise UpstreamError("115 QR login service timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"115 QR login service is unreachable ({type(exc).__name__})") from exc
        except ValueError as exc:
            raise UpstreamError("115 QR login service returned a malformed response") from exc

        if not isinstance(payload, dict):
            raise UpstreamError("115 QR login service returned a malformed response")
        return payload

    async def start(self) -> QRSession:
        payload = await self._call("GET", API_QRCODE_TOKEN)
        data = payload.get("data") or {}
        if not payload.get("state") or not all(data.get(k) for k in ("uid", "sign", "time")):
            raise UpstreamError("115 did not issue a QR login session")

        uid = str(data["uid"])
        return QRSession(
            uid=uid,
            sign=str(data["sign"]),
            time=int(data["time"]),
            qrcode=data.get("qrcode") or self._settings.QR_PAYLOAD_TEMPLATE.format(uid=uid),
        )

    def fetch_display_image(self, uid: str) -> bytes:
        """Render the scannable login image for ``uid`` (no upstream call)."""
        return render_qr_png(self._settings.QR_PAYLOAD_TEMPLATE.format(uid=uid))

    async def poll(self, uid: str, sign: str, time: int) -> QRStatusResponse:
        payload = await self._call(
            "GET", API_QRCODE_STATUS, params={"uid": uid, "sign": sign, "time": time}
        )
        data = payload.get("data") or {}
        try:
            status = STATUS_CODES[int(data.get("status"))]
        except (KeyError, TypeError, ValueError):
            raise UpstreamError(_upstream_message(payload, "115 returned an unknown QR status"))

        return QRStatusResponse(status=status, message=STATUS_MESSAGES[status])

    async def complete(self, uid: str, sign: str, time: int, app: str = "web") -> Drive115CookieFields:
        current = await self.poll(uid, sign, time)
        if current.status is not QRStatus.CONFIRMED:
            raise QRLoginFailedError(
                f"QR code login is not confirmed (status: {current.status.value})"
            )

        payload = await self._call(
            "POST", API_QRCODE_LOGIN.format(app=app), data={"account": uid, "app": app}
        )
        if not payload.get("state"):
            raise QRLoginFailedError(_upstream_message(payload, "115 refused the QR code login"))

        cookie = (payload.get("data") or {}).get("cookie") or {}
        fields = {name.lower(): cookie.get(name) for name in ("UID", "CID", "SEID", "KID")}
        if not all(fields.values()):
            raise QRLoginFailedError("115 returned incomplete credentials")

        try:
            cookies = Drive115CookieFields(**fields)
        except ValidationError as exc:
            raise QRLoginFailedError("115 returned malformed credentials") from exc

        logger.info("QR code login completed via app=%s", app)
        return cookies


def _upstream_message(payload: Dict[str, Any], fallback: str) -> str:
    for key in ("message", "error", "msg"):
        value = payload.get(key)
        if value:
            return f"{fallback}: {value}"
    return fallback
