import argparse, logging, sys
from dataclasses         import dataclass, field
from datetime            import datetime
from pathlib             import Path
from typing              import List, Optional
from tqdm                import tqdm
from distant_basemap     import DistantBaseMap
from distant_cache       import DistantLayerCache
from distant_config      import LOGGER_NAME, load_config, setup_logging
from distant_datasets    import DatasetKey, get_policy, parse_key
from distant_errors      import DistantError, EmptyLayerError
from distant_raster      import DistantRaster
from distant_remote      import DistantRemote
from distant_stylist     import DistantStylist

__all__ = ["LayerResult", "BatchReport", "DistantPipeline", "main"]

@dataclass(frozen=True)
class LayerResult:
    key    : str
    ok     : bool
    path   : Optional[Path] = None
    reason : Optional[str]  = None
    n_data : int            = 0

@dataclass
class BatchReport:
    results : List[LayerResult] = field(default_factory=list)

    @property
    def succeeded(self):
        return [r for r in self.results if r.ok]

    @property
    def failed(self):
        return [r for r in self.results if not r.ok]

    def summary(self):
        lines = [f"{len(self.succeeded)} of {len(self.results)} layer(s) written"]
        for r in self.results:
            if r.ok:
                lines.append(f"  OK      {r.key:<11} {r.n_data} cells -> {r.path}")
            else:
                lines.append(f"  FAILED  {r.key:<11} {r.reason}")
        return "\n".join(lines)

class DistantPipeline:
    """
    Offline batch driver: mirror the remote store, build the base map once, then
    turn every dataset into a normalised `StyledMapLayer` cache entry.

    Datasets are processed one after another against the same immutable base
    map. A dataset that fails is reported in the `BatchReport` and logged as a
    warning; the remaining datasets still run. Failure to list/sync the remote
    store or to build the base map aborts the run.

    Parameters
    ----------
    config : DistantConfig
    logger : logging.Logger, optional
    remote : DistantRemote, optional
        Injected remote store client; built from `config` when omitted.
    basemap_builder : DistantBaseMap, optional
        Injected base map builder; built from `config` when omitted.
    """

    def __init__(self, config, logger=None, remote=None, basemap_builder=None):
        self.config   = config
        self.logger   = logger if logger is not None else logging.getLogger(LOGGER_NAME)
        self.remote   = remote if remote is not None else DistantRemote(config, logger=self.logger)
        self.basemap  = basemap_builder if basemap_builder is not None else DistantBaseMap(config, logger=self.logger)
        self.raster   = DistantRaster(config, logger=self.logger)
        self.stylist  = DistantStylist(config, logger=self.logger)
        self.cache    = DistantLayerCache(config, logger=self.logger)

    def prepare_directories(self):
        for D in (self.config.D_local_data, self.config.D_output):
            Path(D).mkdir(parents=True, exist_ok=True)

    def build_layer(self, key, base):
        """
        Load, reproject, filter, style and normalise one dataset.

        Returns
        -------
        StyledMapLayer
            Not yet persisted.
        """
        policy = get_policy(key)
        source = self.raster.resolve_source(policy.source)
        raster = self.raster.load_raster(source,
                                         bbox        = policy.bbox,
                                         categorical = policy.categorical,
                                         value_name  = policy.value_name)
        cells  = self.raster.project(raster, base.crs)
        if policy.max_latitude is not None:
            cells = self.raster.filter_by_latitude(cells, policy.max_latitude, base.crs)
        layer  = self.stylist.style(cells, policy, base)
        return self.stylist.normalize(layer)

    def process_dataset(self, key, base):
        """
        Build and persist the layer of one dataset, reporting rather than raising.

        Layers without any finite data cell are reported as failed and not
        written unless `config.write_empty_layers` is set.
        """
        key = parse_key(key)
        self.logger.info(f"Processing: {key.value}")
        try:
            layer  = self.build_layer(key, base)
            n_data = int(layer.primary_data().data[get_policy(key).value_name].notna().sum())
            if n_data == 0 and not self.config.write_empty_layers:
                raise EmptyLayerError(f"no data cells remain for '{key.value}' after reprojection and filtering")
            P_cache = self.cache.save(key, layer)
        except Exception as e:
            self.logger.warning(f"Skipping {key.value}: {type(e).__name__}: {e}")
            return LayerResult(key=key.value, ok=False, reason=f"{type(e).__name__}: {e}")
        return LayerResult(key=key.value, ok=True, path=P_cache, n_data=n_data)

    def run(self, keys=None, sync=True):
        """
        Run the whole pipeline.

        Parameters
        ----------
        keys : iterable of str or DatasetKey, optional
            Datasets to process, all four by default.
        sync : bool, default True
            List and mirror the remote store before processing.

        Returns
        -------
        BatchReport

        Raises
        ------
        RemoteSyncError, BaseMapError
            Fatal; no cache entry is written.
        """
        keys = [parse_key(k) for k in keys] if keys is not None else list(DatasetKey)
        t0   = datetime.now()
        self.config.summary(self.logger)
        self.prepare_directories()
        if sync:
            self.remote.list_remote()
            self.remote.sync_remote()
        else:
            self.logger.info("skipping remote synchronisation")
        base   = self.basemap.build_base_map()
        report = BatchReport()
        for key in tqdm(keys, desc="layers"):
            report.results.append(self.process_dataset(key, base))
        self.logger.info(report.summary())
        self.logger.info(f"pipeline finished in {(datetime.now() - t0).total_seconds():.1f} s")
        return report

def build_parser():
    parser = argparse.ArgumentParser(description="Preprocess the DISTANT datasets into cached, styled map layers.")
    parser.add_argument("--config", help="Path to JSON config file (default: built-in defaults)")
    parser.add_argument("--datasets", nargs="+", choices=[k.value for k in DatasetKey],
                        help="Datasets to process (default: all)")
    parser.add_argument("--skip-sync", action="store_true", help="Do not list or mirror the remote store")
    parser.add_argument("--log-file", help="Append log output to this file (default: <D_logs>/preprocess_<timestamp>.log)")
    parser.add_argument("--log-level", help="Logging level (default: config log_level)")
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 if any dataset fails")
    return parser

def main(argv=None):
    args   = build_parser().parse_args(argv)
    config = load_config(args.config)
    P_log  = args.log_file if args.log_file else Path(config.D_logs, f"preprocess_{datetime.now():%Y%m%d_%H%M%S}.log")
    logger = setup_logging(P_log, args.log_level or config.log_level)
    try:
        report = DistantPipeline(config, logger=logger).run(keys=args.datasets, sync=not args.skip_sync)
    except DistantError as e:
        logger.error(f"pipeline aborted: {type(e).__name__}: {e}")
        return 2
    if args.strict and report.failed:
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
