from fastapi import APIRouter

from app.routers import (
    auth,
    health,
    products,
    project_requests,
    quotes,
    user_notifications,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(quotes.router, prefix="/quotes", tags=["Quotes"])
api_router.include_router(project_requests.router, prefix="/project-requests", tags=["Project Requests"])
api_router.include_router(user_notifications.router, prefix="/notifications", tags=["Notifications"])
