# Routes package __init__.py - re-exports routers for main.py convenience
from .accounts import router as accounts_router
from .verses import router as verses_router
from .collections import router as collections_router
from .review import router as review_router
from .profile import router as profile_router

__all__ = ['accounts_router', 'verses_router', 'collections_router', 'review_router', 'profile_router']
