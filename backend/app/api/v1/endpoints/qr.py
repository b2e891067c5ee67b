# backend/app/api/v1/endpoints/qr.py
"""
115 QR-code login handshake.

These routes need no session: they only relay 115's handshake. Storing the
resulting credentials is done through ``POST /credentials`` or
``POST /credentials/qr``.
"""
from fastapi import APIRouter, Depends, Query, Response

from backend.app.api import deps
from backend.app.schemas.qr import (
    QRLoginRequest,
    QRLoginResponse,
    QRSession,
    QRSessionRef,
    QRStatusResponse,
)
from backend.app.services.qr_login import QRLoginBroker

router = APIRouter()


@router.post("/start", response_model=QRSession)
async def qr_start(broker: QRLoginBroker = Depends(deps.get_qr_broker)):
    return await broker.start()


@router.get("/image")
def qr_image(
        uid: str = Query(..., min_length=1, max_length=100),
        broker: QRLoginBroker = Depends(deps.get_qr_broker),
):
    image = broker.fetch_display_image(uid)
    return Response(
        content=image,
        media_type="image/png",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/status", response_model=QRStatusResponse)
async def qr_status(
        request: QRSessionRef,
        broker: QRLoginBroker = Depends(deps.get_qr_broker),
):
    return await broker.poll(request.uid, request.sign, request.time)


@router.post("/login", response_model=QRLoginResponse)
async def qr_login(
        request: QRLoginRequest,
        broker: QRLoginBroker = Depends(deps.get_qr_broker),
):
    cookies = await broker.complete(request.uid, request.sign, request.time, request.app)
    return QRLoginResponse(
        success=True,
        message="QR code login successful",
        credentials=cookies,
    )
