from fastapi import APIRouter
from .inventory_routes import router as blood_inventory_router
from .request_routes import router as request_router
from .notification_routes import router as notification_router


router = APIRouter()

router.include_router(blood_inventory_router)
router.include_router(request_router)
router.include_router(notification_router)
