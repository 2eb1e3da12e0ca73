"""
mapmaker - offline vector map packages from regional shapefile bundles.
"""

__version__ = "0.1.0"
