from fastapi import APIRouter
from app.api.api_v1.endpoints import availability

router = APIRouter()

# Include all routers
router.include_router(availability.router, prefix="/availability", tags=["Availability"])
