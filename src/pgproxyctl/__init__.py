"""
pgproxyctl - Lifecycle manager for a local PostgreSQL RDS proxy container
"""

__version__ = "0.3.0"

from .core import ProxyManager
from .errors import ProxyError

__all__ = ["ProxyManager", "ProxyError"]
