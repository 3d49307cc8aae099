"""
Users module - account records consumed from the identity service.
"""

from bursary.modules.users.models import User, UserRole
from bursary.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]
