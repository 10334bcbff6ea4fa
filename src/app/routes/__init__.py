"""
FastAPI Routes.

API 라우트 (REST, JSON)
"""

from . import exports

__all__ = ["exports"]
