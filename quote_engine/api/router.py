from fastapi import APIRouter

from quote_engine.api.routes import price_quotes

api_router = APIRouter()
api_router.include_router(price_quotes.router)
