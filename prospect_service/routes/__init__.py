"""
Prospect service route modules.

Each module handles one area of the API.
"""

from .admin import router as admin_router
from .competitor_identification import router as competitor_identification_router
from .contacts import router as contacts_router
from .searches import router as searches_router

__all__ = [
    "admin_router",
    "competitor_identification_router",
    "contacts_router",
    "searches_router",
]
