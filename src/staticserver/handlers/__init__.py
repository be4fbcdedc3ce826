"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    from staticserver.handlers import StaticFileHandler, DirectoryAssetStore

    handler = StaticFileHandler(DirectoryAssetStore("/var/www/site"))
    handler(writer, request)

=============================================================================
"""

from .assets import (
    Asset,
    AssetStore,
    DirectoryAssetStore,
    MemoryAssetStore,
    bundled_assets,
)
from .static import StaticFileHandler, clean_path, compute_etag, etag_matches

__all__ = [
    "Asset",
    "AssetStore",
    "DirectoryAssetStore",
    "MemoryAssetStore",
    "bundled_assets",
    "StaticFileHandler",
    "clean_path",
    "compute_etag",
    "etag_matches",
]
