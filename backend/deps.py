"""
Shared FastAPI dependencies.

Outbound clients are built once in the lifespan (main.py) from settings and
stored on app.state; routers reach them through these getters so tests can
swap in fakes with app.dependency_overrides.
"""

from fastapi import Request

from services.email_service import EmailClient
from services.midtrans_service import MidtransClient
from services.sheets_service import SheetsClient
from services.xendit_service import XenditClient


def get_midtrans_client(request: Request) -> MidtransClient:
    return request.app.state.midtrans


def get_xendit_client(request: Request) -> XenditClient:
    return request.app.state.xendit


def get_email_client(request: Request) -> EmailClient:
    return request.app.state.email


def get_sheets_client(request: Request) -> SheetsClient:
    return request.app.state.sheets
