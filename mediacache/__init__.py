"""
mediacache - read-through caching for rate-limited media metadata lookups.
"""

__version__ = "1.0.0"
