from fastapi import APIRouter

from app.api.balances import balances_router, user_balances_router
from app.api.categories import categories_router
from app.api.notifications import notifications_router
from app.api.requests import requests_router
from app.api.users import users_router

api_router = APIRouter()
api_router.include_router(requests_router)
api_router.include_router(user_balances_router)
api_router.include_router(balances_router)
api_router.include_router(notifications_router)
api_router.include_router(users_router)
api_router.include_router(categories_router)
