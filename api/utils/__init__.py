# Warm Intro Graph API Utilities
"""
Shared utility functions for Warm Intro Graph API services.
"""

from api.utils.datetime_utils import make_aware, days_between
from api.utils.db_paths import get_db_path

__all__ = ["make_aware", "days_between", "get_db_path"]
