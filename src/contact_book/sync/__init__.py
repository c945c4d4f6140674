"""
Remote sync: Google OAuth, Drive object store and the sync gateway.
"""

from contact_book.sync.gateway import SyncGateway, SyncState
from contact_book.sync.drive import DriveObjectStore, ObjectStore, RemoteObjectNotFound

__all__ = [
    "SyncGateway",
    "SyncState",
    "DriveObjectStore",
    "ObjectStore",
    "RemoteObjectNotFound",
]
