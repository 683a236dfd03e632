"""
Middleware package for ShipRewards.
"""
from .role_auth import require_role, get_role_from_request, ADMIN, MANAGER, STAFF
