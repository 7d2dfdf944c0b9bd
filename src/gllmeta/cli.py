"""Command-line entry point: generate GLL metadata for a mesh file.

Example:
    gllmeta --mesh outCSMesh.g --np 4 --out gllmeta.nc
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from utils.netcdf_writer import NetCDFWriter

from .config import (
    default_strict_topology,
    default_tolerance,
    default_workers,
    set_log_level,
)
from .exceptions import GLLMetaDataError
from .mesh import load_mesh
from .metadata import FOUR_PI, generate_metadata

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the ``gllmeta`` command."""
    parser = argparse.ArgumentParser(
        prog="gllmeta",
        description="Generate GLL node indices and Jacobians for a spherical mesh.",
    )
    parser.add_argument("--mesh", required=True, help="input mesh file")
    parser.add_argument("--np", type=int, default=4, dest="n_points",
                        help="GLL points per element edge (default: 4)")
    parser.add_argument("--out", default="gllmeta.nc", help="output netCDF file")
    parser.add_argument("--bubble", choices=("none", "uniform", "interior"),
                        default="none", help="area-correcting bubble mode")
    parser.add_argument("--tolerance", type=float, default=default_tolerance(),
                        help="node matching distance on the unit sphere")
    parser.add_argument("--workers", type=int, default=default_workers(),
                        help="threads used for per-element geometry")
    parser.add_argument("--strict-topology", action="store_true",
                        default=default_strict_topology(),
                        help="fail if element boundary nodes stay unshared")
    parser.add_argument("--split-faces", action="store_true",
                        help="split triangles/polygons into quadrilaterals")
    parser.add_argument("--index-base", type=int, choices=(0, 1), default=1,
                        help="offset of the stored GLL node indices")
    parser.add_argument("--log-level", default="INFO", help="logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line tool.

    Returns:
        int: 0 on success, 1 on any metadata or I/O failure.
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    set_log_level(args.log_level)

    try:
        _LOGGER.info("Loading mesh %s", args.mesh)
        mesh = load_mesh(args.mesh)
        if args.split_faces:
            mesh = mesh.to_quadrilaterals()

        face_areas = mesh.face_areas()
        total_area = float(face_areas.sum())
        _LOGGER.info("Input Mesh Geometric Area: %1.15e", total_area)

        meta = generate_metadata(
            mesh,
            args.n_points,
            bubble=args.bubble,
            tolerance=args.tolerance,
            strict_topology=args.strict_topology,
            workers=args.workers,
            face_areas=face_areas,
        )
        _LOGGER.info(
            "Accumulated J: %1.15e (Error %1.15e)",
            meta.accumulated_jacobian,
            meta.accumulated_jacobian - FOUR_PI,
        )
        _LOGGER.info(
            "Deviation from input geometric area: %1.15e",
            meta.accumulated_jacobian - total_area,
        )

        NetCDFWriter.write_metadata(
            args.out,
            meta.nodes,
            meta.jacobian,
            attributes=meta.attributes(),
            index_base=args.index_base,
        )
    except GLLMetaDataError as exc:
        _LOGGER.error("%s: %s", type(exc).__name__, exc)
        return 1
    except OSError as exc:
        _LOGGER.error("I/O failure: %s", exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
