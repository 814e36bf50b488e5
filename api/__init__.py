"""
HTTP RPC surface for the client UI and the scheduler.
"""

from api.app import create_app

__all__ = ["create_app"]
