"""Module defining NetCDFWriter for exporting GLL metadata to netCDF.

This module provides NetCDFWriter, a utility class with static methods to
write the GLL node-index and Jacobian tensors as a self-describing netCDF
dataset and to read such a dataset back.

Layout:
  dimensions  nelem, np
  int    GLLnodes(np, np, nelem)   global node index, offset by `index_base`
  double J(np, np, nelem)          Jacobian weight
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
from netCDF4 import Dataset
from numpy.typing import NDArray

_LOGGER = logging.getLogger(__name__)


class NetCDFWriter:
    """Utility class for writing and reading GLL metadata datasets.

    Node indices are held 0-based in memory. On disk they are shifted by
    ``index_base`` (1 by default, the convention of Fortran consumers), and
    the shift is stored as the ``index_base`` attribute of ``GLLnodes``.
    """

    @staticmethod
    def write_metadata(
        filename: str,
        nodes: NDArray[Any],
        jacobian: NDArray[Any],
        *,
        attributes: Optional[Mapping[str, Any]] = None,
        index_base: int = 1,
        format: str = "NETCDF4",
    ) -> None:
        """Write GLL metadata tensors to a netCDF file.

        The dataset is written to a temporary file next to `filename` and
        moved into place once complete, so a failed write never leaves a
        truncated dataset behind.

        Args:
            filename (str): Path to the output .nc file (replaced if present).
            nodes (NDArray[Any]): 0-based global indices, shape (np, np, nelem).
            jacobian (NDArray[Any]): Jacobian weights, shape (np, np, nelem).
            attributes (Optional[Mapping[str, Any]]): Global attributes.
            index_base (int): Offset added to the stored node indices.
            format (str): netCDF file format passed to ``netCDF4.Dataset``.

        Raises:
            ValueError: If the tensors do not share an (np, np, nelem) shape.
        """
        nodes = np.asarray(nodes)
        jacobian = np.asarray(jacobian, dtype=float)
        if nodes.ndim != 3 or nodes.shape[0] != nodes.shape[1]:
            raise ValueError(f"nodes must have shape (np, np, nelem), got {nodes.shape}")
        if jacobian.shape != nodes.shape:
            raise ValueError(
                f"jacobian shape {jacobian.shape} does not match nodes {nodes.shape}"
            )
        if index_base not in (0, 1):
            raise ValueError(f"index_base must be 0 or 1, got {index_base!r}")

        n_points, _, nelem = nodes.shape
        tmp = f"{filename}.tmp"
        try:
            with Dataset(tmp, "w", format=format) as nc:
                nc.createDimension("nelem", nelem)
                nc.createDimension("np", n_points)

                var_nodes = nc.createVariable("GLLnodes", "i4", ("np", "np", "nelem"))
                var_nodes[:] = (nodes + index_base).astype(np.int32)
                var_nodes.index_base = np.int32(index_base)
                var_nodes.long_name = "global GLL node index"

                var_jac = nc.createVariable("J", "f8", ("np", "np", "nelem"))
                var_jac[:] = jacobian
                var_jac.long_name = "GLL Jacobian times quadrature weight"

                for key, value in (attributes or {}).items():
                    nc.setncattr(key, value)
            os.replace(tmp, filename)
        except Exception:
            _LOGGER.exception("write_metadata failed for '%s'.", filename)
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

        _LOGGER.info(
            "Wrote GLL metadata to %s (np=%d, nelem=%d, index_base=%d)",
            filename,
            n_points,
            nelem,
            index_base,
        )

    @staticmethod
    def read_metadata(
        filename: str,
    ) -> Tuple[NDArray[Any], NDArray[Any], Dict[str, Any]]:
        """Read a GLL metadata dataset.

        Args:
            filename (str): Path to the .nc file.

        Returns:
            Tuple[NDArray[Any], NDArray[Any], Dict[str, Any]]:
                0-based node indices (int64), Jacobian weights (float64) and
                the global attributes.
        """
        with Dataset(filename, "r") as nc:
            nc.set_auto_mask(False)
            var_nodes = nc.variables["GLLnodes"]
            base = int(getattr(var_nodes, "index_base", 1))
            nodes = np.asarray(var_nodes[:], dtype=np.int64) - base
            jacobian = np.asarray(nc.variables["J"][:], dtype=float)
            attrs = {key: nc.getncattr(key) for key in nc.ncattrs()}
        return nodes, jacobian, attrs
