"""
Shared building blocks for module models.
"""

from bursary.modules.shared.models import BaseModel

__all__ = ["BaseModel"]
