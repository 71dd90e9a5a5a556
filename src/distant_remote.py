import logging, posixpath
from pathlib             import Path
from tqdm                import tqdm
from distant_config      import LOGGER_NAME
from distant_errors      import RemoteSyncError

__all__ = ["DistantRemote"]

class DistantRemote:
    """
    List and mirror the remote object store holding the source rasters.

    Parameters
    ----------
    config : DistantConfig
        Supplies `remote_repo`, `endpoint_url`, `remote_anon` and `D_local_data`.
    fs : fsspec.AbstractFileSystem, optional
        Filesystem to talk to. Defaults to an `s3fs.S3FileSystem` pointed at
        `config.endpoint_url`; anything offering ``ls``/``find``/``get_file``
        (e.g. fsspec's memory filesystem) can be injected.
    logger : logging.Logger, optional
    """

    def __init__(self, config, fs=None, logger=None):
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(LOGGER_NAME)
        self._fs    = fs

    @property
    def fs(self):
        if self._fs is None:
            import s3fs
            self._fs = s3fs.S3FileSystem(anon=self.config.remote_anon,
                                         client_kwargs={"endpoint_url": self.config.endpoint_url})
        return self._fs

    @property
    def prefix(self):
        """`remote_repo` without protocol or trailing slash, e.g. ``scar/distant``."""
        return self.config.remote_repo.split("://", 1)[-1].strip("/")

    def _relative(self, path):
        rel = posixpath.relpath(path.lstrip("/"), self.prefix)
        if rel.startswith(".."):
            raise RemoteSyncError(f"{path} is not under {self.config.remote_repo}")
        return rel

    def list_remote(self):
        """Names of the entries directly under the remote prefix."""
        self.logger.info(f"listing {self.config.remote_repo} (endpoint {self.config.endpoint_url})")
        try:
            entries = self.fs.ls(self.prefix, detail=False)
        except Exception as e:
            raise RemoteSyncError(f"could not list {self.config.remote_repo}: {e}") from e
        names = sorted(self._relative(p) for p in entries)
        self.logger.info("Remote repository contents:\n  " + "\n  ".join(names))
        return names

    def sync_remote(self, D_local=None):
        """
        Mirror every object under the remote prefix into `D_local`.

        Files already present locally with the remote size are skipped.

        Returns
        -------
        list of pathlib.Path
            Local paths written during this call.

        Raises
        ------
        RemoteSyncError
            On any listing or transfer failure; a partial sync is not resumed.
        """
        D_local = Path(D_local if D_local is not None else self.config.D_local_data)
        D_local.mkdir(parents=True, exist_ok=True)
        try:
            objects = self.fs.find(self.prefix, detail=True)
        except Exception as e:
            raise RemoteSyncError(f"could not list {self.config.remote_repo}: {e}") from e
        written = []
        for path, info in tqdm(sorted(objects.items()), desc="sync", disable=not objects):
            if info.get("type", "file") != "file":
                continue
            P_local = Path(D_local, self._relative(path))
            size    = info.get("size")
            if P_local.exists() and size is not None and P_local.stat().st_size == size:
                self.logger.debug(f"up to date: {P_local}")
                continue
            P_local.parent.mkdir(parents=True, exist_ok=True)
            try:
                self.fs.get_file(path, str(P_local))
            except Exception as e:
                raise RemoteSyncError(f"could not download {path}: {e}") from e
            self.logger.info(f"downloaded {path} -> {P_local}")
            written.append(P_local)
        self.logger.info(f"Data synchronization completed: {len(written)} file(s) updated in {D_local}")
        return written
