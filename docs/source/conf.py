# Configuration file for the Sphinx documentation builder.
import os
import sys
sys.path.insert(0, os.path.abspath('../../src'))
project = 'DISTANT'
copyright = '2025, SCAR DISTANT contributors'
author = 'SCAR DISTANT contributors'
release = '0.1.0'
extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.autosummary',
    'myst_parser',
]
autosummary_generate = True
autodoc_mock_imports = ['streamlit']
exclude_patterns = []
html_theme = 'sphinx_rtd_theme'
