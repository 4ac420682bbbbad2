"""API v1 router aggregation"""
from fastapi import APIRouter
from app.api.v1.endpoints import fingerprint_endpoints

api_router = APIRouter()

api_router.include_router(fingerprint_endpoints.router, prefix="/fingerprints", tags=["Trial Fingerprints"])
