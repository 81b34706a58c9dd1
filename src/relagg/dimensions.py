"""
Normalization of axis specifiers and expansion of relations defined on a
sub-dimension of a compound axis.

Data is an `xarray.DataArray` with three dimensions in the order spatial,
temporal, data. Any of them may carry a `pandas.MultiIndex`, whose levels are
the sub-dimensions of that axis.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import xarray as xr
from attrs import frozen
from pandas_indexing import projectlevel

from .errors import MappingResolutionError, MissingDimension
from .utils import isnum, isstr, join_label


@frozen
class AxisRef:
    """
    Reference to an axis or to one of its sub-dimensions.

    Attributes
    ----------
    axis : int
        1 = spatial, 2 = temporal, 3 = data
    level : int, optional
        0-based position of the sub-dimension within a compound axis, None
        for the whole axis

    Notes
    -----
    `str(AxisRef(3, 1))` gives the classic notation "3.2".
    """

    axis: int
    level: int | None = None

    @property
    def whole(self) -> AxisRef:
        return AxisRef(self.axis)

    @property
    def is_subdim(self) -> bool:
        return self.level is not None

    def __str__(self):
        if self.level is None:
            return str(self.axis)
        return f"{self.axis}.{self.level + 1}"


def axis_index(x: xr.DataArray, axis: int) -> pd.Index:
    return x.get_index(x.dims[axis - 1])


def items(x: xr.DataArray, ref: AxisRef) -> pd.Index:
    """
    Unique labels of `x` on the axis or sub-dimension `ref`.
    """
    index = axis_index(x, ref.axis)
    if ref.level is None:
        return index
    return index.get_level_values(ref.level).unique()


def joined_items(x: xr.DataArray, ref: AxisRef) -> list:
    """
    Labels of `ref` as they appear in mapping tables, ie. compound labels in
    their joined string form and all others unchanged.
    """
    return [join_label(label) for label in items(x, ref)]


def compound_labels(labels: pd.Index, index: pd.Index) -> pd.Index:
    """
    Map joined string labels onto the tuples of the compound `index`.

    `labels` is returned unchanged unless `index` is compound and every
    label can be found in it.
    """
    if not isinstance(index, pd.MultiIndex):
        return labels

    joined = {join_label(label): label for label in index}
    tuples = [
        label if isinstance(label, tuple) else joined.get(label) for label in labels
    ]
    if any(t is None for t in tuples):
        return labels
    return pd.MultiIndex.from_tuples(tuples, names=index.names)


def candidate_refs(x: xr.DataArray):
    """
    Yields all whole axes and sub-dimensions of `x`.
    """
    for axis in (1, 2, 3):
        yield AxisRef(axis)
        index = axis_index(x, axis)
        if isinstance(index, pd.MultiIndex):
            for level in range(index.nlevels):
                yield AxisRef(axis, level)


def find_dims(x: xr.DataArray, labels) -> list[AxisRef]:
    """
    All axes and sub-dimensions of `x` whose label set equals `labels`.
    """
    wanted = set(labels)
    return [ref for ref in candidate_refs(x) if set(items(x, ref)) == wanted]


def _parse_code(dim) -> AxisRef:
    axis, _, sub = str(dim).partition(".")
    try:
        axis = int(axis)
        level = int(sub) - 1 if sub else -1
    except ValueError:
        raise MissingDimension(f"Cannot interpret dimension specifier: {dim}")
    return AxisRef(axis, level if level >= 0 else None)


def _find_level(x: xr.DataArray, name: str) -> AxisRef:
    for axis in (1, 2, 3):
        index = axis_index(x, axis)
        if isinstance(index, pd.MultiIndex) and name in index.names:
            return AxisRef(axis, index.names.index(name))
    raise MissingDimension(
        f"`{name}` is neither a dimension nor a sub-dimension of the data: "
        + ", ".join(map(str, x.dims))
    )


def resolve_dim(x: xr.DataArray, dim) -> AxisRef:
    """
    Normalize an axis specifier for `x`.

    Parameters
    ----------
    x : xr.DataArray
        data with spatial, temporal and data dimension
    dim : AxisRef, int, float or str
        1 = spatial, 2 = temporal, 3 = data; sub-dimensions either in decimal
        notation (3.2 is the second sub-dimension of the data axis) or by name;
        whole axes also by their dimension name

    Returns
    -------
    AxisRef

    Raises
    ------
    MissingDimension
        if `dim` does not refer to an axis or sub-dimension of `x`
    """
    if isinstance(dim, AxisRef):
        ref = dim
    elif isstr(dim) and dim in x.dims:
        ref = AxisRef(x.dims.index(dim) + 1)
    elif isstr(dim) and not isnum(dim):
        ref = _find_level(x, dim)
    elif isnum(dim):
        ref = _parse_code(dim)
    else:
        raise MissingDimension(f"Cannot interpret dimension specifier: {dim!r}")

    if ref.axis not in (1, 2, 3):
        raise MissingDimension(f"Axis must be one of 1, 2 or 3, not {ref.axis}")
    if ref.level is None:
        return ref

    index = axis_index(x, ref.axis)
    if not isinstance(index, pd.MultiIndex):
        if ref.level == 0:
            return ref.whole
        raise MissingDimension(f"Axis {ref.axis} has no sub-dimension {ref}")
    if ref.level >= index.nlevels:
        raise MissingDimension(
            f"Axis {ref.axis} has only {index.nlevels} sub-dimensions, not {ref}"
        )
    return ref


def context(index: pd.MultiIndex, level: int) -> list:
    """
    Distinct combinations of the components of `index` besides `level`.
    """
    others = [name for i, name in enumerate(index.names) if i != level]
    if not others:
        return [()]
    return list(projectlevel(index, others).unique())


def context_codes(index: pd.MultiIndex, level: int) -> np.ndarray:
    """
    Integer code of the context of every label in `index`.
    """
    others = [name for i, name in enumerate(index.names) if i != level]
    if not others:
        return np.zeros(len(index), dtype=int)
    codes, _ = pd.factorize(projectlevel(index, others))
    return codes


def _attach(ctx, label, level: int) -> tuple:
    key = ctx if isinstance(ctx, tuple) else (ctx,)
    return key[:level] + (label,) + key[level:]


def _level_name(rel: pd.DataFrame, index: pd.MultiIndex, level: int, dims) -> str:
    taken = (set(index.names) | set(dims)) - {index.names[level]}
    name = rel.index.name
    if isstr(name) and name not in taken:
        return name
    return index.names[level]


def expand_relation(rel, x: xr.DataArray, ref: AxisRef):
    """
    Expand a relation defined on the sub-dimension `ref` of `x` to the whole
    compound axis.

    Parameters
    ----------
    rel : pd.DataFrame
        relation matrix with the sub-dimension labels on its columns (or rows)
    x : xr.DataArray
        data to be aggregated
    ref : AxisRef
        targeted sub-dimension

    Returns
    -------
    pd.DataFrame
        block-diagonal relation matrix whose columns equal the labels of the
        whole axis, one block for every combination of the remaining
        sub-dimensions

    Raises
    ------
    MappingResolutionError
        if the sub-dimension labels match neither the columns nor the rows
    """
    if not ref.is_subdim or not isinstance(rel, pd.DataFrame):
        return rel

    index = axis_index(x, ref.axis)
    if set(rel.columns) == set(index):
        return rel

    names = set(index.get_level_values(ref.level))
    if set(rel.columns) != names:
        if set(rel.index) != names:
            unknown = set(rel.columns) - names
            uncovered = names - set(rel.columns)
            msg = []
            if unknown:
                msg.append(
                    "The provided mapping contains entries which could not be "
                    "found in the data: " + ", ".join(map(str, unknown))
                )
            if uncovered:
                msg.append(
                    "The provided data set contains entries not covered by the "
                    "given mapping: " + ", ".join(map(str, uncovered))
                )
            raise MappingResolutionError("\n".join(msg))
        rel = rel.T

    contexts = context(index, ref.level)
    rows = [_attach(c, label, ref.level) for c in contexts for label in rel.index]
    cols = [_attach(c, label, ref.level) for c in contexts for label in rel.columns]

    row_names = list(index.names)
    row_names[ref.level] = _level_name(rel, index, ref.level, x.dims)

    full = pd.DataFrame(
        np.kron(np.eye(len(contexts)), rel.to_numpy(dtype=float)),
        index=pd.MultiIndex.from_tuples(rows, names=row_names),
        columns=pd.MultiIndex.from_tuples(cols, names=index.names),
    )
    return full.reindex(columns=index)


def labeled(values, indexes: dict, name=None, attrs=None) -> xr.DataArray:
    """
    Assemble a DataArray from `values` and one index per dimension.

    Compound indexes become MultiIndex coordinates.
    """
    simple = {
        dim: (dim, index)
        for dim, index in indexes.items()
        if not isinstance(index, pd.MultiIndex)
    }
    da = xr.DataArray(
        values, coords=simple, dims=list(indexes), name=name, attrs=dict(attrs or {})
    )
    for dim, index in indexes.items():
        if isinstance(index, pd.MultiIndex):
            da = da.assign_coords(xr.Coordinates.from_pandas_multiindex(index, dim))
    return da
