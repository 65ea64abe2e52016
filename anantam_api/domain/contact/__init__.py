"""Contact domain - Public contact form delivered by email"""

from .router import router

__all__ = ["router"]
