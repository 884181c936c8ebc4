from fastapi import APIRouter
from . import requests, instruments

api_router = APIRouter()
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
api_router.include_router(instruments.router, prefix="/instruments", tags=["instruments"])
