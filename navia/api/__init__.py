"""
API Module
==========

FastAPI routes and endpoint definitions.
"""

from navia.api.routes import router

__all__ = ["router"]
