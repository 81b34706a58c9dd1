import logging

import numpy as np
import numpy.testing as npt
import pandas as pd
import pytest

from relagg import relation
from relagg.errors import MappingResolutionError


_countries = ["AUT", "DEU", "FRA", "USA", "CAN"]

_mapping = pd.DataFrame(
    {
        "country": _countries,
        "region": ["EUR", "EUR", "EUR", "NAM", "NAM"],
        "global": ["GLO"] * 5,
    }
)


def test_as_relation():
    assert isinstance(relation.as_relation(np.eye(2)), relation.ExplicitMatrix)
    assert isinstance(relation.as_relation(_mapping), relation.MappingTable)
    assert isinstance(relation.as_relation("mapping.csv"), relation.MappingFile)

    tagged = relation.MappingTable(_mapping)
    assert relation.as_relation(tagged) is tagged

    with pytest.raises(MappingResolutionError):
        relation.as_relation(42)


def test_as_relation_numeric_frame():
    matrix = pd.DataFrame(np.eye(2), index=["A", "B"], columns=["a", "b"])
    assert isinstance(
        relation.as_relation(matrix, items=["a", "b"]), relation.ExplicitMatrix
    )
    assert isinstance(
        relation.as_relation(matrix.T, items=["b", "a"]), relation.ExplicitMatrix
    )
    # labels unrelated to the data make it a mapping
    assert isinstance(relation.as_relation(matrix), relation.MappingTable)
    assert isinstance(
        relation.as_relation(matrix, items=["x", "y"]), relation.MappingTable
    )
    assert isinstance(
        relation.as_relation(matrix, items=["a", "c"], partrel=True),
        relation.ExplicitMatrix,
    )


def test_numeric_mapping_table():
    mapping = pd.DataFrame({"year": [2010, 2020, 2030], "decade": [2010, 2020, 2020]})
    assert isinstance(
        relation.as_relation(mapping, items=[2010, 2020, 2030]), relation.MappingTable
    )

    obs = relation.build_relation(mapping, [2010, 2020, 2030])
    assert list(obs.index) == [2010, 2020]
    assert list(obs.columns) == [2010, 2020, 2030]
    npt.assert_array_equal(obs.to_numpy(), [[1, 0, 0], [0, 1, 1]])

    obs = relation.build_relation(mapping, [2010, 2020, 2030], from_=0, to=1)
    npt.assert_array_equal(obs.to_numpy(), [[1, 0, 0], [0, 1, 1]])


def test_unlabeled_frame_as_matrix():
    obs = relation.build_relation(
        relation.ExplicitMatrix(pd.DataFrame(np.eye(2))), ["a", "b"]
    )
    assert isinstance(obs, np.ndarray)
    npt.assert_array_equal(obs, np.eye(2))


def test_mapping_matrix():
    obs = relation.build_relation(_mapping, _countries)

    exp = np.array(
        [
            [1, 1, 1, 0, 0],
            [0, 0, 0, 1, 1],
        ]
    )
    npt.assert_array_equal(obs.to_numpy(), exp)
    assert list(obs.index) == ["EUR", "NAM"]
    assert list(obs.columns) == _countries
    assert obs.index.name == "region"
    assert obs.columns.name == "country"


def test_explicit_matrix_passes_through():
    m = np.array([[1, 0.5, 0], [0, 0.5, 1]])
    obs = relation.build_relation(m, ["a", "b", "c"])
    npt.assert_array_equal(obs, m)
    assert obs.dtype == float


def test_target_column_last_uses_previous():
    obs = relation.build_relation(_mapping, ["GLO"])
    assert list(obs.index) == ["EUR", "NAM"]
    assert list(obs.columns) == ["GLO"]
    npt.assert_array_equal(obs.to_numpy(), [[1], [1]])


def test_single_column_maps_onto_itself():
    mapping = pd.DataFrame({"country": _countries})
    obs = relation.build_relation(mapping, _countries)
    npt.assert_array_equal(obs.to_numpy(), np.eye(5))


def test_explicit_columns_by_name_and_position():
    by_name = relation.build_relation(
        _mapping, _countries, from_="country", to="global"
    )
    by_position = relation.build_relation(_mapping, _countries, from_=0, to=2)
    assert list(by_name.index) == ["GLO"]
    npt.assert_array_equal(by_name.to_numpy(), by_position.to_numpy())

    with pytest.raises(MappingResolutionError, match="not found"):
        relation.build_relation(_mapping, _countries, to="continent")


def test_composite_target():
    obs = relation.build_relation(_mapping, _countries, to="region+global")
    assert list(obs.index) == ["EUR", "NAM", "GLO"]
    npt.assert_array_equal(
        obs.to_numpy(),
        [
            [1, 1, 1, 0, 0],
            [0, 0, 0, 1, 1],
            [1, 1, 1, 1, 1],
        ],
    )


def test_no_source_column():
    with pytest.raises(MappingResolutionError, match="'from' column"):
        relation.build_relation(_mapping, ["AUT", "DEU"])


@pytest.mark.parametrize(
    "items",
    (
        ["AUT", "DEU"],  # mapping covers more
        _countries + ["JPN"],  # mapping covers less
    ),
)
def test_partial_source_column(items):
    obs = relation.build_relation(_mapping, items, partrel=True)
    assert obs.columns.name == "country"


def test_ambiguous_source_column_warns(caplog):
    mapping = _mapping.assign(iso=_countries)[["country", "iso", "region"]]
    with caplog.at_level(logging.WARNING, logger="relagg"):
        obs = relation.build_relation(mapping, _countries)

    assert obs.columns.name == "country"
    # the column following the first match
    assert obs.index.name == "iso"
    assert "country, iso" in caplog.text


def test_mapping_file(tmp_path):
    f = tmp_path / "regionmapping.csv"
    f.write_text(
        "country;region\n"
        + "\n".join(f"{c};{r}" for c, r in zip(_countries, _mapping.region))
    )
    obs = relation.build_relation(str(f), _countries)
    assert list(obs.index) == ["EUR", "NAM"]
    npt.assert_array_equal(obs.sum(axis=1).to_numpy(), [3, 2])


def test_mapping_file_loader(tmp_path):
    f = tmp_path / "mapping.any"
    f.touch()
    obs = relation.build_relation(
        relation.MappingFile(f, loader=lambda path: _mapping), _countries
    )
    assert list(obs.index) == ["EUR", "NAM"]


def test_missing_mapping_file(tmp_path):
    with pytest.raises(MappingResolutionError, match="Cannot find"):
        relation.build_relation(str(tmp_path / "missing.csv"), _countries)


def test_mapping_file_numeric_labels(tmp_path):
    f = tmp_path / "years.csv"
    f.write_text("year;period\n2010;early\n2020;late\n2030;late\n")
    obs = relation.build_relation(str(f), [2010, 2020, 2030])
    assert list(obs.index) == ["early", "late"]
    assert list(obs.columns) == [2010, 2020, 2030]
