from fastapi import APIRouter
from app.api.v2 import (
    structures,
    identity,
)

api_router = APIRouter()

# Include all v2 routers
api_router.include_router(structures.router, prefix="/structures", tags=["structures"])
api_router.include_router(identity.router, prefix="/identity", tags=["identity"])
