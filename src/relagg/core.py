"""
Unweighted and weighted (dis)aggregation of DataArrays along one axis.

`aggregate` sums the data with a relation matrix. `aggregate_weighted` turns
this into a weighted mean (or a weighted disaggregation) by calling
`aggregate` once for the weights and once for the weighted data.
"""

from __future__ import annotations

from datetime import datetime

import numpy as np
import pandas as pd
import xarray as xr

from .contraction import contract_axis
from .dimensions import (
    AxisRef,
    axis_index,
    compound_labels,
    context_codes,
    expand_relation,
    find_dims,
    items,
    joined_items,
    resolve_dim,
)
from .errors import InputTypeError, PartialRelationError, WeightValidationError
from .relation import ExplicitMatrix, build_relation
from .utils import AXES, isstr, logger, report


# guards the weight normalization against division by zero
EPSILON = 1e-100

NEGATIVE_WEIGHT_POLICIES = ("allow", "warn", "stop")


def copy_metadata(out: xr.DataArray, x: xr.DataArray) -> xr.DataArray:
    """
    Refresh unit and lineage attributes of `out` from `x`.
    """
    out.attrs.update({k: v for k, v in x.attrs.items() if k != "comment"})
    return out


def _annotate(out, x, metadata):
    comment = x.attrs.get("comment", [])
    if isstr(comment):
        comment = [comment]
    out.attrs["comment"] = list(comment) + [
        f"Data aggregated (aggregate): {datetime.now():%c}"
    ]
    return metadata(out, x)


def _check_input(x, what="Input"):
    if not isinstance(x, xr.DataArray) or x.ndim != 3:
        raise InputTypeError(
            f"{what} is not a DataArray with spatial, temporal and data dimension"
        )


def restrict_partial(x, rel, ref: AxisRef, verbosity=1, reporter=None):
    """
    Reduce `x` and `rel` to the labels they have in common.

    Parameters
    ----------
    x : xr.DataArray
        data
    rel : pd.DataFrame
        relation matrix, source labels on the columns
    ref : AxisRef
        aggregated axis or sub-dimension

    Returns
    -------
    x, rel
        data without the entries missing in `rel`, and the relation without
        the columns missing in `x` and without the rows left empty

    Raises
    ------
    PartialRelationError
        if there is no overlap at all
    """
    if not isinstance(rel, pd.DataFrame):
        raise PartialRelationError("Partial relations need a labeled relation matrix")

    labels = items(x, ref)
    common = labels[labels.isin(rel.columns)]
    if common.empty and labels.isin(rel.index).any():
        rel = rel.T
        common = labels[labels.isin(rel.columns)]
    if common.empty:
        raise PartialRelationError(
            "The relation matrix consists of no entry that could be used for "
            "aggregation"
        )

    noagg = labels[~labels.isin(rel.columns)]
    if not noagg.empty:
        report(
            verbosity,
            "The following entries were not aggregated because there was no "
            "respective entry in the relation matrix: %s",
            ", ".join(map(str, noagg)),
            reporter=reporter,
        )
        index = axis_index(x, ref.axis)
        keys = index if ref.level is None else index.get_level_values(ref.level)
        x = x.isel({x.dims[ref.axis - 1]: np.flatnonzero(keys.isin(common))})

    rel = rel.reindex(columns=common)
    rel = rel.loc[rel.sum(axis=1) > 0]
    return x, rel


def _prepare(x, rel, from_, to, dim, partrel, verbosity, reporter):
    ref = resolve_dim(x, dim)
    rel = build_relation(
        rel,
        joined_items(x, ref),
        from_=from_,
        to=to,
        partrel=partrel,
        reporter=reporter,
    )

    index = axis_index(x, ref.axis)
    if (
        isinstance(rel, pd.DataFrame)
        and isinstance(index, pd.MultiIndex)
        and not ref.is_subdim
    ):
        # mappings name compound labels by their joined form
        if partrel:
            known = set(joined_items(x, ref))
            rel = rel.loc[
                :, [isinstance(c, tuple) or c in known for c in rel.columns]
            ]
        rel = rel.set_axis(compound_labels(rel.index, index), axis=0)
        rel = rel.set_axis(compound_labels(rel.columns, index), axis=1)

    if partrel:
        x, rel = restrict_partial(x, rel, ref, verbosity, reporter)
    return x, rel, ref


def aggregate(
    x: xr.DataArray,
    rel,
    from_=None,
    to=None,
    dim=1,
    partrel: bool = False,
    regions=None,
    verbosity: int = 1,
    reporter=None,
    metadata=copy_metadata,
) -> xr.DataArray:
    """
    (Dis-)aggregates `x` along one axis with a relation matrix or mapping.

    Parameters
    ----------
    x : xr.DataArray
        data with spatial, temporal and data dimension (in this order)
    rel : relation matrix, mapping table or mapping file
        see `relagg.relation.build_relation`
    from_, to : str or int, optional
        source and target column of a mapping; `to` may join several columns
        with "+" to aggregate to all of them at once
    dim : int, float or str, default 1
        aggregated axis (1 = spatial, 2 = temporal, 3 = data) or sub-dimension,
        see `relagg.dimensions.resolve_dim`
    partrel : bool, default False
        allow the relation and `x` to only partially overlap; entries without
        relation are lost
    regions : sequence or pd.Series, optional
        region of every spatial cell, used to label the output of unlabeled
        spatial relations
    verbosity : int, default 1
        severity of diagnostic messages, see `relagg.utils.report`
    reporter : logging.Logger-like, optional
        receives messages, defaults to the package logger
    metadata : callable, default copy_metadata
        refreshes the attributes of the output from `x`

    Returns
    -------
    xr.DataArray
    """
    _check_input(x)

    aggregated, rel, ref = _prepare(
        x, rel, from_, to, dim, partrel, verbosity, reporter
    )
    if ref.is_subdim:
        rel = expand_relation(rel, aggregated, ref)
        ref = ref.whole

    out = contract_axis(aggregated, rel, ref.axis, regions=regions)
    return _annotate(out, x, metadata)


def detect_weight_dim(weight: xr.DataArray, rel, ref: AxisRef) -> AxisRef:
    """
    Axis or sub-dimension of `weight` matching the rows or columns of `rel`.

    Only candidates on the same axis as `ref` are considered; if both the
    whole axis and one of its sub-dimensions match, the whole axis wins.

    Raises
    ------
    WeightValidationError
        if there is no or more than one candidate
    """
    if not isinstance(rel, pd.DataFrame):
        raise WeightValidationError(
            "Could not detect aggregation dimension in weight for an unlabeled "
            "relation matrix, provide `wdim`"
        )

    found = [
        r
        for r in find_dims(weight, rel.index) + find_dims(weight, rel.columns)
        if r.axis == ref.axis
    ]
    found = list(dict.fromkeys(found))

    if not found:
        raise WeightValidationError(
            "Could not detect aggregation dimension in weight (no match)!"
        )
    if len(found) > 1:
        if ref.whole in found:
            return ref.whole
        raise WeightValidationError(
            "Could not detect aggregation dimension in weight (multiple matches: "
            + ", ".join(map(str, found))
            + ")!"
        )
    return found[0]


def _complete_slices(missing: np.ndarray, weight: xr.DataArray, wref: AxisRef):
    moved = np.moveaxis(missing, wref.axis - 1, 0)
    flat = moved.reshape(moved.shape[0], -1)

    if wref.level is None:
        codes = np.zeros(flat.shape[0], dtype=int)
    else:
        codes = context_codes(axis_index(weight, wref.axis), wref.level)

    counts = np.zeros((codes.max() + 1, flat.shape[1]))
    np.add.at(counts, codes, flat)
    sizes = np.bincount(codes)[:, np.newaxis]
    return bool(((counts == 0) | (counts == sizes)).all())


def validate_weight(
    weight: xr.DataArray,
    wref: AxisRef,
    negative_weight="warn",
    mixed_aggregation=False,
    reporter=None,
) -> None:
    """
    Checks `weight` for missing and negative values.

    Parameters
    ----------
    weight : xr.DataArray
    wref : AxisRef
        aggregated axis of `weight`
    negative_weight : {"allow", "warn", "stop"}
        accept negative weights, accept them with a warning or reject them
    mixed_aggregation : bool
        allow slices along `wref` which are entirely missing

    Raises
    ------
    WeightValidationError
    """
    if negative_weight not in NEGATIVE_WEIGHT_POLICIES:
        raise ValueError(
            f"negative_weight must be one of {', '.join(NEGATIVE_WEIGHT_POLICIES)}, "
            f"not {negative_weight!r}"
        )

    values = weight.values
    missing = np.isnan(values)
    if missing.any():
        if not mixed_aggregation:
            raise WeightValidationError(
                "Weight contains NaNs which is only allowed if mixed_aggregation=True!"
            )
        if not _complete_slices(missing, weight, wref):
            raise WeightValidationError(
                "Weight contains columns with a mix of NaNs and numbers which is "
                "not allowed!"
            )

    if negative_weight != "allow" and (values[~missing] < 0).any():
        if negative_weight == "warn":
            (reporter or logger()).warning(
                "Negative numbers in weight. Dangerous, was it really intended?"
            )
        else:
            raise WeightValidationError(
                "Negative numbers in weight. Weight should be positive!"
            )


def _match(windex: pd.Index, xindex: pd.Index):
    if isinstance(windex, pd.MultiIndex) != isinstance(xindex, pd.MultiIndex):
        return None
    if not windex.is_unique:
        return None
    try:
        indexer = windex.get_indexer(xindex)
    except (TypeError, ValueError):
        return None
    return indexer if (indexer >= 0).all() else None


def _broadcast(w: xr.DataArray, x: xr.DataArray, wref: AxisRef, xref: AxisRef):
    """
    Values of `w` for every cell of `x`.

    Axes are matched by their labels; on the aggregated axis the labels of
    `wref` may also match the sub-dimension `xref`, and singleton axes are
    broadcast.
    """
    indexers = []
    for axis in (1, 2, 3):
        windex, xindex = axis_index(w, axis), axis_index(x, axis)
        indexer = _match(windex, xindex)

        if indexer is None and axis == xref.axis:
            wkeys, xkeys = windex, xindex
            if wref.level is not None:
                wkeys = windex.get_level_values(wref.level)
            if xref.level is not None:
                xkeys = xindex.get_level_values(xref.level)
            indexer = _match(pd.Index(wkeys), pd.Index(xkeys))

        if indexer is None and len(windex) == 1:
            indexer = np.zeros(len(xindex), dtype=int)

        if indexer is None:
            raise WeightValidationError(
                f"Weight does not match data on the {AXES[axis - 1]} axis"
            )
        indexers.append(indexer)

    return w.values[np.ix_(*indexers)]


def scale(x: xr.DataArray, w: xr.DataArray, xref: AxisRef, wref: AxisRef):
    """
    `x` multiplied by `w`, broadcasting `w` over the labels of `x`.
    """
    return x.copy(data=x.values * _broadcast(w, x, wref, xref))


def aggregate_weighted(
    x: xr.DataArray,
    rel,
    weight: xr.DataArray,
    from_=None,
    to=None,
    dim=1,
    wdim=None,
    partrel: bool = False,
    negative_weight: str = "warn",
    mixed_aggregation: bool = False,
    regions=None,
    verbosity: int = 1,
    reporter=None,
    metadata=copy_metadata,
) -> xr.DataArray:
    """
    Weighted (dis-)aggregation of `x` along one axis.

    The weight needs to be given in the finer resolution, ie. for aggregation
    on the labels of `x` and for disaggregation on the labels of the output.
    Its other axes must either equal the ones of `x` or be singletons, which
    are applied to all entries.

    Parameters
    ----------
    x : xr.DataArray
        data with spatial, temporal and data dimension
    rel : 1-0 relation matrix, mapping table or mapping file
        see `relagg.relation.build_relation`
    weight : xr.DataArray
        non-negative weights, need not be normalized
    from_, to, dim, partrel, regions, verbosity, reporter, metadata
        as for `aggregate`
    wdim : int, float or str, optional
        aggregated axis of `weight`, detected from the relation if not given
    negative_weight : {"allow", "warn", "stop"}, default "warn"
        how to treat negative weights
    mixed_aggregation : bool, default False
        slices of `weight` which are entirely NaN are summed up instead of
        averaged

    Returns
    -------
    xr.DataArray

    Raises
    ------
    WeightValidationError
        for invalid weights or weights which do not align with `x`

    Notes
    -----
    Computes ``aggregate(x * weight) / aggregate(weight)`` for aggregation and
    ``aggregate(x / aggregate(weight)) * weight`` for disaggregation.
    """
    _check_input(x)
    _check_input(weight, "Weight")

    x, rel, ref = _prepare(x, rel, from_, to, dim, partrel, verbosity, reporter)

    wref = (
        detect_weight_dim(weight, rel, ref)
        if wdim is None
        else resolve_dim(weight, wdim)
    )
    if not ref.is_subdim:
        wref = wref.whole

    validate_weight(weight, wref, negative_weight, mixed_aggregation, reporter)

    # inner calls take the prepared relation as a matrix
    rel = ExplicitMatrix(rel)
    kwargs = dict(
        partrel=partrel, regions=regions, reporter=reporter, metadata=metadata
    )
    total = aggregate(weight, rel, dim=wref, verbosity=10, **kwargs)
    normalizer = 1 / (total + EPSILON)
    if mixed_aggregation:
        normalizer = normalizer.fillna(1)
        weight = weight.fillna(1)

    labels = set(items(x, ref))
    if set(items(weight, wref)) == labels:
        out = aggregate(
            scale(x, weight, ref, wref), rel, dim=ref, verbosity=verbosity, **kwargs
        )
        return scale(out, normalizer, ref, wref)
    elif set(items(normalizer, wref)) == labels:
        out = aggregate(
            scale(x, normalizer, ref, wref), rel, dim=ref, verbosity=verbosity, **kwargs
        )
        return scale(out, weight, ref, wref)

    if partrel:
        raise WeightValidationError(
            "Weight does not match data. For partrel=True make sure that the "
            "weight is already reduced to the intersect of relation matrix and x!"
        )
    raise WeightValidationError("Weight does not match data")
