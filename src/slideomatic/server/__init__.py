"""HTTP asset and share server."""

from slideomatic.server.app import create_app
from slideomatic.server.blobs import FileBlobStore
from slideomatic.server.cleanup import CleanupReport, cleanup_expired
from slideomatic.server.externalizer import PublishedShare, ShareExternalizer

__all__ = [
    "CleanupReport",
    "FileBlobStore",
    "PublishedShare",
    "ShareExternalizer",
    "cleanup_expired",
    "create_app",
]
