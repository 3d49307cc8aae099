"""
Reference module - read-only counties, sub-counties, wards, and institutions.
"""

from bursary.modules.reference.models import County, Institution, SubCounty, Ward

__all__ = ["County", "SubCounty", "Ward", "Institution"]
