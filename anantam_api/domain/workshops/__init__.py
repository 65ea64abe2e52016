"""Workshops domain - Catalogue, seat inventory, registrations and refunds"""

from .router import router

__all__ = ["router"]
