"""
Fingerprint profiling.
"""

from insight.profile.models import (
    FingerprintKey,
    FingerprintRecord,
    GeoData,
    ProfileRequest,
    ProfileResponse,
    UserProfile,
    VisitRequest,
)

__all__ = [
    "FingerprintKey",
    "FingerprintRecord",
    "GeoData",
    "ProfileRequest",
    "ProfileResponse",
    "UserProfile",
    "VisitRequest",
]
