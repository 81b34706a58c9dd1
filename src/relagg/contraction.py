"""
Matrix multiplication of a relation matrix with one axis of a DataArray.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import xarray as xr

from .dimensions import axis_index, labeled
from .errors import LabelingError, MappingResolutionError, ShapeMismatchError
from .utils import AXES, SEP


def orient_relation(rel, labels: pd.Index):
    """
    Orient `rel` so that its columns match `labels` and bring them into the
    same order.

    Labeled relations are oriented by their labels, unlabeled ones by their
    shape.

    Raises
    ------
    ShapeMismatchError
        if neither dimension of an unlabeled `rel` has the length of `labels`
    MappingResolutionError
        if the labels of a labeled `rel` do not match `labels`
    """
    if isinstance(rel, pd.DataFrame):
        wanted = set(labels)
        if set(rel.columns) != wanted:
            if set(rel.index) != wanted:
                missing = wanted - set(rel.columns)
                unknown = set(rel.columns) - wanted
                raise MappingResolutionError(
                    "Relation matrix does not match the data; "
                    f"missing in relation: {', '.join(map(str, missing)) or '-'}; "
                    f"missing in data: {', '.join(map(str, unknown)) or '-'}"
                )
            rel = rel.T
        return rel.reindex(columns=labels)

    n = len(labels)
    if n not in rel.shape:
        raise ShapeMismatchError(
            "Relation matrix has in both dimensions a different number of "
            f"entries {rel.shape} than the data has cells ({n})!"
        )
    return rel if rel.shape[1] == n else rel.T


def _matvec(matrix: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Product of `matrix` and a slice `y` holding infinite or missing values.

    An infinite value is propagated as is to every row related to it,
    regardless of the relation weight. A missing value turns every row related
    to it missing, while unrelated rows get a zero contribution.
    """
    matrix = matrix.copy()
    y = y.copy()

    for value in (-np.inf, np.inf):
        cols = y == value
        if cols.any():
            block = matrix[:, cols]
            block[block != 0] = value
            matrix[:, cols] = block
            y[cols] = 1

    cols = np.isnan(y)
    if cols.any():
        block = matrix[:, cols]
        block[block != 0] = np.nan
        matrix[:, cols] = block
        y[cols] = 0

    return matrix @ y


def contract(values: np.ndarray, matrix: np.ndarray, axis: int) -> np.ndarray:
    """
    Multiply `matrix` onto the `axis` of `values`.

    Parameters
    ----------
    values : np.ndarray
        data with n entries on `axis`
    matrix : np.ndarray
        m x n relation matrix
    axis : int
        0-based axis of `values`

    Returns
    -------
    np.ndarray
        same shape as `values`, but with m entries on `axis`
    """
    moved = np.moveaxis(np.asarray(values, dtype=float), axis, 0)
    shape = moved.shape
    y = moved.reshape(shape[0], -1)

    out = np.empty((matrix.shape[0], y.shape[1]))
    finite = np.isfinite(y).all(axis=0)
    out[:, finite] = matrix @ y[:, finite]
    for j in np.flatnonzero(~finite):
        out[:, j] = _matvec(matrix, y[:, j])

    return np.moveaxis(out.reshape((matrix.shape[0],) + shape[1:]), 0, axis)


def centroid_labels(matrix: np.ndarray, regions) -> pd.Index:
    """
    Region of the weighted centroid of the cells related to each row.

    `regions` holds the region of every cell; regions are numbered in the
    order of their first appearance.
    """
    codes, uniques = pd.factorize(np.asarray(regions))
    with np.errstate(divide="ignore", invalid="ignore"):
        centre = matrix @ (codes + 1) / matrix.sum(axis=1)
    if not np.isfinite(centre).all():
        raise LabelingError("Cannot derive region labels for rows without relation")
    return pd.Index(uniques[np.rint(centre).astype(int) - 1])


def output_labels(rel, axis: int, regions=None, x_labels=None) -> pd.Index:
    """
    Labels of the aggregated axis.

    Duplicates get a positional suffix, unless the labels are compound.
    """
    if isinstance(rel, pd.DataFrame):
        labels = rel.index
    elif axis == 1:
        if regions is None:
            regions = x_labels
        elif isinstance(regions, pd.Series):
            regions = regions.reindex(x_labels).to_numpy()
        labels = centroid_labels(rel, regions)
    else:
        raise LabelingError(
            f"Missing labels for aggregated {AXES[axis - 1]} axis, provide a "
            "labeled relation"
        )

    hierarchical = isinstance(labels, pd.MultiIndex) or any(
        SEP in str(label) for label in labels
    )
    if labels.has_duplicates and not hierarchical:
        labels = pd.Index(
            [f"{label}{SEP}{i}" for i, label in enumerate(labels, 1)],
            name=labels.name,
        )
    return labels


def contract_axis(x: xr.DataArray, rel, axis: int, regions=None) -> xr.DataArray:
    """
    Aggregate the whole `axis` of `x` with the relation matrix `rel`.

    Parameters
    ----------
    x : xr.DataArray
        data
    rel : pd.DataFrame or np.ndarray
        relation matrix, either orientation
    axis : int
        1 = spatial, 2 = temporal, 3 = data
    regions : sequence, optional
        region of every spatial cell, used for labeling the output of
        unlabeled spatial relations

    Returns
    -------
    xr.DataArray
        newly allocated, with the attributes of `x`
    """
    labels = axis_index(x, axis)
    rel = orient_relation(rel, labels)
    matrix = rel.to_numpy(dtype=float) if isinstance(rel, pd.DataFrame) else rel

    values = contract(x.values, matrix, axis - 1)

    indexes = {dim: x.get_index(dim) for dim in x.dims}
    indexes[x.dims[axis - 1]] = output_labels(rel, axis, regions, labels)
    return labeled(values, indexes, name=x.name, attrs=x.attrs)
