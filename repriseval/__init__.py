"""
RepriseVal - deterministic financial resolution and validation for business acquisitions.
"""
__version__ = "1.0.0"
