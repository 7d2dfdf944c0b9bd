"""The gllmeta package generates GLL spectral-element metadata on the sphere.

This package offers:
  - Gauss-Lobatto-Legendre quadrature rules.
  - Spherical surface meshes (file loading, face areas, reference meshes).
  - Global GLL node numbering with shared edge/corner nodes merged.
  - Local Jacobian weights with optional bubble area correction.

Submodules:
  - quadrature: Gauss-Lobatto nodes and weights.
  - mesh: Mesh class, mesh loading and face areas.
  - generation: Cubed-sphere and icosahedral reference meshes.
  - nodes: NodeRegistry for global node indices.
  - jacobian: Projected bilinear map and Jacobian weights.
  - bubble: Uniform and interior bubble corrections.
  - metadata: The metadata generator.
  - parameters: Run settings.
  - cli: The ``gllmeta`` command.

Classes:
  GLLMetaData, Mesh, MetaDataParameters, NodeRegistry
"""

from .config import (
    bool_env,
    default_strict_topology,
    default_tolerance,
    default_workers,
    float_env,
    int_env,
    set_log_level,
)
from .exceptions import (
    ConfigurationError,
    GLLMetaDataError,
    InconsistentTopologyError,
    InvalidInputError,
    MalformedMeshError,
)

from gllmeta.bubble import apply_bubble, apply_interior_bubble, apply_uniform_bubble
from gllmeta.generation import cubed_sphere, icosahedron
from gllmeta.jacobian import face_node_positions, local_jacobians, local_map
from gllmeta.mesh import Mesh, compute_face_areas, load_mesh
from gllmeta.metadata import (
    FOUR_PI,
    GLLMetaData,
    generate_metadata,
    generate_metadata_from_parameters,
)
from gllmeta.nodes import NodeRegistry, count_unshared_boundary_nodes
from gllmeta.parameters import MetaDataParameters
from gllmeta.quadrature import gauss_lobatto, gauss_lobatto_unit

__all__ = [
    # Core classes
    "GLLMetaData",
    "Mesh",
    "MetaDataParameters",
    "NodeRegistry",
    # Operations
    "gauss_lobatto",
    "gauss_lobatto_unit",
    "load_mesh",
    "compute_face_areas",
    "cubed_sphere",
    "icosahedron",
    "local_map",
    "face_node_positions",
    "local_jacobians",
    "apply_bubble",
    "apply_uniform_bubble",
    "apply_interior_bubble",
    "count_unshared_boundary_nodes",
    "generate_metadata",
    "generate_metadata_from_parameters",
    "FOUR_PI",
    # Errors
    "GLLMetaDataError",
    "InvalidInputError",
    "MalformedMeshError",
    "InconsistentTopologyError",
    "ConfigurationError",
    # Configuration
    "bool_env",
    "int_env",
    "float_env",
    "default_strict_topology",
    "default_tolerance",
    "default_workers",
    "set_log_level",
]
