# API routers
from .vendors import router as vendors_router

__all__ = [
    "vendors_router",
]
