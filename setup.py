from setuptools import setup

setup(
    name="DISTANT",
    version="0.1.0",
    description="DISTANT: circum-Antarctic modelled data layers on a shared polar stereographic base map",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    author="SCAR DISTANT contributors",
    url="https://github.com/scar/distant",
    project_urls={
        "Data": "https://source.coop/scar/distant",
    },
    license="MIT",

    # Module files live directly in src/, not in a package directory
    py_modules=[
        "distant_config",
        "distant_errors",
        "distant_layers",
        "distant_palettes",
        "distant_datasets",
        "distant_raster",
        "distant_basemap",
        "distant_stylist",
        "distant_cache",
        "distant_remote",
        "distant_pipeline",
        "distant_plotter",
        "distant_display",
    ],
    package_dir={"": "src"},
    include_package_data=True,

    install_requires=[
        "numpy",
        "pandas",
        "xarray",
        "tqdm",
        "pyproj",
        "shapely",
        "geopandas",
        "pyogrio",
        "rasterio",
        "rioxarray",
        "matplotlib",
        "cmocean",
        "s3fs",
    ],

    extras_require={
        "app": [
            "streamlit",
        ],
        "test": [
            "pytest",
            "fsspec",
        ],
        "docs": [
            "sphinx>=7",
            "sphinx-rtd-theme",
            "myst-parser",
        ],
        "all": [
            "streamlit",
            "pytest",
            "fsspec",
        ],
    },

    entry_points={
        "console_scripts": [
            "distant-preprocess=distant_pipeline:main",
        ],
    },

    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: GIS",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
