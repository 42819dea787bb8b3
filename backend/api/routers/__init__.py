"""API Routers package."""
from . import auth, rosters, settings, exports

__all__ = ['auth', 'rosters', 'settings', 'exports']
