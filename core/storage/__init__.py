"""
Storage helpers shared by the ledger store and the request repository
"""

from core.storage.guard import store_errors

__all__ = [
    "store_errors",
]
