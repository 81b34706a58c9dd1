import numpy as np
import numpy.testing as npt
import pandas as pd
import pytest

from relagg.dimensions import (
    AxisRef,
    compound_labels,
    expand_relation,
    find_dims,
    labeled,
    resolve_dim,
)
from relagg.errors import MappingResolutionError, MissingDimension


_data_index = pd.MultiIndex.from_product(
    [["SSP1", "SSP2"], ["coal", "gas", "wind"]], names=["scenario", "fuel"]
)

_fuel_types = pd.DataFrame(
    [[1.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
    index=pd.Index(["fossil", "renewable"], name="type"),
    columns=pd.Index(["coal", "gas", "wind"], name="fuel"),
)


def _data():
    return labeled(
        np.arange(24, dtype=float).reshape(2, 2, 6),
        {
            "region": pd.Index(["EUR", "NAM"]),
            "year": pd.Index([2010, 2020]),
            "data": _data_index,
        },
    )


def test_labeled():
    x = _data()
    assert x.dims == ("region", "year", "data")
    assert isinstance(x.get_index("data"), pd.MultiIndex)
    assert list(x.get_index("data").names) == ["scenario", "fuel"]


def test_axis_ref_notation():
    assert str(AxisRef(1)) == "1"
    assert str(AxisRef(3, 1)) == "3.2"
    assert AxisRef(3, 1).whole == AxisRef(3)
    assert AxisRef(3, 1).is_subdim
    assert not AxisRef(3).is_subdim


@pytest.mark.parametrize(
    "dim, exp",
    (
        (1, AxisRef(1)),
        ("year", AxisRef(2)),
        ("data", AxisRef(3)),
        (3.2, AxisRef(3, 1)),
        ("3.2", AxisRef(3, 1)),
        ("3.1", AxisRef(3, 0)),
        ("fuel", AxisRef(3, 1)),
        (AxisRef(3, 0), AxisRef(3, 0)),
        # first sub-dimension of a simple axis is the axis itself
        (2.1, AxisRef(2)),
    ),
)
def test_resolve_dim(dim, exp):
    assert resolve_dim(_data(), dim) == exp


@pytest.mark.parametrize("dim", ("foo", 4, 3.5, 2.2, None))
def test_resolve_dim_missing(dim):
    with pytest.raises(MissingDimension):
        resolve_dim(_data(), dim)


def test_find_dims():
    x = _data()
    assert find_dims(x, ["wind", "gas", "coal"]) == [AxisRef(3, 1)]
    assert find_dims(x, ["EUR", "NAM"]) == [AxisRef(1)]
    assert find_dims(x, ["EUR"]) == []


def test_compound_labels():
    obs = compound_labels(pd.Index(["SSP2.gas", "SSP1.coal"]), _data_index)
    assert list(obs) == [("SSP2", "gas"), ("SSP1", "coal")]

    # unknown labels leave the index untouched
    labels = pd.Index(["SSP3.gas"])
    assert compound_labels(labels, _data_index) is labels


def test_expand_relation():
    x = _data()
    obs = expand_relation(_fuel_types, x, AxisRef(3, 1))

    assert obs.shape == (4, 6)
    assert list(obs.columns) == list(_data_index)
    assert list(obs.index) == [
        ("SSP1", "fossil"),
        ("SSP1", "renewable"),
        ("SSP2", "fossil"),
        ("SSP2", "renewable"),
    ]
    assert list(obs.index.names) == ["scenario", "type"]
    npt.assert_array_equal(
        obs.to_numpy(),
        [
            [1, 1, 0, 0, 0, 0],
            [0, 0, 1, 0, 0, 0],
            [0, 0, 0, 1, 1, 0],
            [0, 0, 0, 0, 0, 1],
        ],
    )


def test_expand_relation_transposed():
    x = _data()
    exp = expand_relation(_fuel_types, x, AxisRef(3, 1))
    obs = expand_relation(_fuel_types.T, x, AxisRef(3, 1))
    npt.assert_array_equal(obs.to_numpy(), exp.to_numpy())
    assert list(obs.index) == list(exp.index)


def test_expand_relation_whole_axis_unchanged():
    x = _data()
    assert expand_relation(_fuel_types, x, AxisRef(1)) is _fuel_types

    full = pd.DataFrame(np.ones((1, 6)), columns=_data_index)
    assert expand_relation(full, x, AxisRef(3, 1)) is full


def test_expand_relation_mismatch():
    rel = _fuel_types.rename(columns={"wind": "nuclear"})
    with pytest.raises(MappingResolutionError, match="nuclear"):
        expand_relation(rel, _data(), AxisRef(3, 1))
