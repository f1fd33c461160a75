from fastapi import APIRouter

from clickcollect.api.v1.endpoints import pickup


api_router = APIRouter(prefix="/api")

# Pickup search + location listing
api_router.include_router(pickup.router)
