__all__ = ["DistantError", "BaseMapError", "RemoteSyncError", "RasterLoadError",
           "EmptyLayerError", "LayerNotFoundError", "LayerCacheError"]

class DistantError(Exception):
    """Root of every error raised by the DISTANT layer pipeline."""

class BaseMapError(DistantError):
    """The circumpolar base map could not be built; no layer can be produced."""

class RemoteSyncError(DistantError):
    """Listing or mirroring the remote object store failed."""

class RasterLoadError(DistantError):
    """A dataset raster is unreachable, unreadable, or empty after cropping."""

class EmptyLayerError(DistantError):
    """No finite data cells remain after reprojection and filtering."""

class LayerNotFoundError(DistantError, KeyError):
    """Unknown dataset key, or no cache entry written for a known key."""

    def __str__(self):
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""

class LayerCacheError(DistantError):
    """A cache entry exists but cannot be deserialised."""
