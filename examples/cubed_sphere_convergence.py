"""Convergence of the accumulated GLL Jacobian on cubed-sphere meshes.

Builds cubed spheres of increasing resolution, generates metadata for a few
GLL orders and prints the error of the accumulated Jacobian against 4π.
The last mesh is also written out as a netCDF dataset.
"""

import logging

from gllmeta import cubed_sphere, generate_metadata, set_log_level
from utils.netcdf_writer import NetCDFWriter

logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
set_log_level("WARNING")

print(f"{'ne':>4} {'np':>4} {'K':>8} {'error':>12}")
for ne in (2, 4, 8):
    mesh = cubed_sphere(ne)
    for n_points in (2, 4, 6):
        meta = generate_metadata(mesh, n_points)
        print(f"{ne:>4} {n_points:>4} {meta.n_unique_nodes:>8} {meta.error():>12.3e}")

NetCDFWriter.write_metadata(
    "gllmeta_cs8.nc", meta.nodes, meta.jacobian, attributes=meta.attributes()
)
