# backend/app/api/v1/router.py
from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, credentials, drive, qr

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(credentials.router, prefix="/credentials", tags=["credentials"])
api_router.include_router(qr.router, prefix="/qr", tags=["qr"])
# Proxied operations; all require an active credential
api_router.include_router(drive.router, prefix="/drive", tags=["drive"])
