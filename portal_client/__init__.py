"""
门户后端客户端模块包
"""

from .base_client import BasePortalClient
from .quote_api import QuoteApi

__all__ = ["BasePortalClient", "QuoteApi"]
