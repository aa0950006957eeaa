"""
API route modules.
"""

from flow.api.routes import ambient, health

__all__ = ["ambient", "health"]
