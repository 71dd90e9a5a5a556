"""
DISTANT (circum-Antarctic modelled data layers)

Turns published circum-Antarctic rasters into styled polar stereographic map
layers drawn on a shared base map, and serves them read-only to a small viewer.

Modules
-------
distant_config    : JSON configuration and logging setup.
distant_basemap   : Circumpolar base map (bathymetry, coastline, ice shelves, graticule, border).
distant_raster    : Raster loading, bounding-box cropping, reprojection and tabulation.
distant_stylist   : Dataset overlay, legends and the uniform display theme.
distant_cache     : One pickled layer per dataset key.
distant_remote    : Listing and mirroring the remote object store.
distant_pipeline  : Batch preprocessing driver and command line entry point.
distant_plotter   : matplotlib rendering of styled layers.
distant_display   : Read-only display shell with PNG/CSV export.
"""
__version__ = '0.1.0'
