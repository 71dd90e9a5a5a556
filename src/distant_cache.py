import logging, os, pickle, tempfile
from pathlib             import Path
from distant_config      import LOGGER_NAME
from distant_datasets    import DatasetKey, parse_key
from distant_errors      import LayerCacheError, LayerNotFoundError
from distant_layers      import StyledMapLayer

__all__ = ["DistantLayerCache"]

class DistantLayerCache:
    """
    One pickled `StyledMapLayer` per dataset key under `config.D_output`.

    Entries are named ``plot_<key>.pkl``, written once per pipeline run and
    replaced wholesale (temporary file + atomic rename), so a reader never sees
    a half-written entry. Reads neither lock nor write and may run concurrently.
    """

    def __init__(self, config, logger=None):
        self.config   = config
        self.logger   = logger if logger is not None else logging.getLogger(LOGGER_NAME)
        self.D_output = Path(config.D_output)

    def path_for(self, key):
        return Path(self.D_output, f"plot_{parse_key(key).value}.pkl")

    def save(self, key, layer):
        """Persist `layer` as the cache entry of `key`, replacing any previous entry."""
        if not isinstance(layer, StyledMapLayer):
            raise TypeError(f"expected a StyledMapLayer, got {type(layer).__name__}")
        P_cache = self.path_for(key)
        P_cache.parent.mkdir(parents=True, exist_ok=True)
        fd, P_tmp = tempfile.mkstemp(prefix=f".{P_cache.stem}.", suffix=".tmp", dir=P_cache.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                pickle.dump(layer, f, protocol=pickle.HIGHEST_PROTOCOL)
            os.replace(P_tmp, P_cache)
        except BaseException:
            if os.path.exists(P_tmp):
                os.remove(P_tmp)
            raise
        self.logger.info(f"Map processed and saved: {P_cache}")
        return P_cache

    def load(self, key):
        """
        Read the cached layer of `key`.

        Raises
        ------
        LayerNotFoundError
            `key` is not one of the dataset keys, or no entry has been written for it.
        LayerCacheError
            The entry exists but cannot be unpickled into a `StyledMapLayer`.
        """
        P_cache = self.path_for(key)
        if not P_cache.exists():
            raise LayerNotFoundError(f"no cached layer for '{parse_key(key).value}' at {P_cache}")
        try:
            with open(P_cache, "rb") as f:
                layer = pickle.load(f)
        except Exception as e:
            raise LayerCacheError(f"could not read cached layer {P_cache}: {e}") from e
        if not isinstance(layer, StyledMapLayer):
            raise LayerCacheError(f"{P_cache} does not hold a StyledMapLayer")
        return layer

    def available(self):
        """Dataset keys that currently have a cache entry, in enumeration order."""
        return [k for k in DatasetKey if self.path_for(k).exists()]
