import os

import numpy as np
import pytest
from netCDF4 import Dataset

from utils.netcdf_writer import NetCDFWriter


@pytest.fixture
def tensors():
    nodes = np.arange(2 * 2 * 3, dtype=np.int64).reshape(2, 2, 3)
    jacobian = np.linspace(0.1, 1.2, 12).reshape(2, 2, 3)
    return nodes, jacobian


def test_write_metadata_one_based(tmp_path, tensors):
    nodes, jacobian = tensors
    fn = tmp_path / "meta.nc"

    NetCDFWriter.write_metadata(str(fn), nodes, jacobian, attributes={"np": 2, "bubble": "none"})

    with Dataset(str(fn)) as nc:
        assert nc.dimensions["nelem"].size == 3
        assert nc.dimensions["np"].size == 2
        var = nc.variables["GLLnodes"]
        assert var.dimensions == ("np", "np", "nelem")
        assert var.dtype == np.int32
        assert int(var.index_base) == 1
        np.testing.assert_array_equal(np.asarray(var[:]), nodes + 1)
        assert nc.variables["J"].dtype == np.float64
        assert nc.getncattr("bubble") == "none"

    out_nodes, out_jac, attrs = NetCDFWriter.read_metadata(str(fn))
    np.testing.assert_array_equal(out_nodes, nodes)
    np.testing.assert_array_equal(out_jac, jacobian)
    assert out_nodes.dtype == np.int64
    assert attrs["np"] == 2
    assert not os.path.exists(f"{fn}.tmp")


def test_write_metadata_zero_based(tmp_path, tensors):
    nodes, jacobian = tensors
    fn = tmp_path / "meta0.nc"

    NetCDFWriter.write_metadata(str(fn), nodes, jacobian, index_base=0)

    with Dataset(str(fn)) as nc:
        np.testing.assert_array_equal(np.asarray(nc.variables["GLLnodes"][:]), nodes)
    out_nodes, _, _ = NetCDFWriter.read_metadata(str(fn))
    np.testing.assert_array_equal(out_nodes, nodes)


def test_overwrites_existing_file(tmp_path, tensors):
    nodes, jacobian = tensors
    fn = tmp_path / "meta.nc"
    fn.write_text("stale")

    NetCDFWriter.write_metadata(str(fn), nodes, jacobian)
    out_nodes, _, _ = NetCDFWriter.read_metadata(str(fn))
    np.testing.assert_array_equal(out_nodes, nodes)


def test_shape_mismatch(tmp_path, tensors):
    nodes, jacobian = tensors
    with pytest.raises(ValueError):
        NetCDFWriter.write_metadata(str(tmp_path / "x.nc"), nodes, jacobian[:, :, :2])
    with pytest.raises(ValueError):
        NetCDFWriter.write_metadata(str(tmp_path / "x.nc"), nodes[0], jacobian[0])
    assert not (tmp_path / "x.nc").exists()


def test_bad_index_base(tmp_path, tensors):
    nodes, jacobian = tensors
    with pytest.raises(ValueError):
        NetCDFWriter.write_metadata(str(tmp_path / "x.nc"), nodes, jacobian, index_base=2)


def test_failed_write_leaves_no_files(tmp_path, tensors):
    """
    Test that a write failing midway removes both the temporary file and the
    target, so no partial metadata file is left behind.
    """
    nodes, jacobian = tensors
    fn = tmp_path / "bad.nc"
    with pytest.raises(Exception):
        NetCDFWriter.write_metadata(
            str(fn), nodes, jacobian, attributes={"bad": object()}
        )
    assert not fn.exists()
    assert not os.path.exists(f"{fn}.tmp")
