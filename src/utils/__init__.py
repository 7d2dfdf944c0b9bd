"""The utils package contains file writers used by gllmeta.

Submodules:
  - netcdf_writer: NetCDFWriter for GLL metadata datasets.

Utilities:
  NetCDFWriter
"""

from utils.netcdf_writer import NetCDFWriter

__all__ = [
    "NetCDFWriter",
]
