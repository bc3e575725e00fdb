"""ShelfGuard - Role-based access control for content management.

Roles, permission grants, user role assignments and the permission
checks that gate every protected action.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
