"""
Repository packaging for inspector scans.
"""

from .bundle import Bundle, BundleBuilder
from .monorepo import detect_monorepo

__all__ = ['Bundle', 'BundleBuilder', 'detect_monorepo']
