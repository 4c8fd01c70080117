# FILE: clinic_print/api/router.py
from fastapi import APIRouter

from clinic_print.api import routes_export, routes_print

api_router = APIRouter()
api_router.include_router(routes_print.router)
api_router.include_router(routes_export.router)
