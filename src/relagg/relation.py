"""
Construction of relation matrices from explicit matrices, mapping tables or
mapping files.

A relation matrix is a `pd.DataFrame` with the target labels on its rows and
the source labels on its columns. Unlabeled `np.ndarray`s are passed through
as they are.
"""

from __future__ import annotations

import os
from collections.abc import Callable

import numpy as np
import pandas as pd
from attrs import field, frozen

from ._io import read_mapping
from .errors import MappingResolutionError
from .utils import Pathy, isstr, join_label, logger, report


@frozen(eq=False)
class ExplicitMatrix:
    """Relation given as a (labeled or unlabeled) numeric matrix."""

    matrix: pd.DataFrame | np.ndarray


@frozen(eq=False)
class MappingTable:
    """Relation given as a table with a source and one or more target columns."""

    table: pd.DataFrame


@frozen
class MappingFile:
    """
    Relation given as a reference to a mapping file.

    Attributes
    ----------
    path : str or Path
        location of the mapping
    loader : callable, default read_mapping
        turns `path` into a mapping table
    """

    path: Pathy
    loader: Callable[[Pathy], pd.DataFrame] = field(default=read_mapping)

    def load(self) -> pd.DataFrame:
        if not os.path.exists(self.path):
            raise MappingResolutionError(
                f"Cannot find given mapping file: {self.path}"
            )
        try:
            return self.loader(self.path)
        except (OSError, ValueError) as e:
            raise MappingResolutionError(
                f"Cannot read mapping file {self.path}: {e}"
            ) from e


Relation = ExplicitMatrix | MappingTable | MappingFile


def _numeric(df: pd.DataFrame) -> bool:
    return bool(len(df.columns)) and all(
        pd.api.types.is_numeric_dtype(dtype) for dtype in df.dtypes
    )


def _labels_match(matrix: pd.DataFrame, items, partrel=False) -> bool:
    items = set(items)
    for labels in (matrix.columns, matrix.index):
        labels = {join_label(label) for label in labels}
        if labels == items or (partrel and labels & items):
            return True
    return False


def as_relation(rel, items=None, partrel=False) -> Relation:
    """
    Classify a raw relation argument.

    Numeric arrays are explicit matrices, strings or paths refer to mapping
    files. A DataFrame is an explicit matrix only if all its columns are
    numeric and its row or column labels are the `items` to be aggregated
    (or overlap with them for `partrel`); any other DataFrame is a mapping
    table, even if it only holds numbers like years.
    """
    if isinstance(rel, (ExplicitMatrix, MappingTable, MappingFile)):
        return rel
    if isinstance(rel, np.ndarray):
        return ExplicitMatrix(rel)
    if isinstance(rel, pd.DataFrame):
        if items is not None and _numeric(rel) and _labels_match(rel, items, partrel):
            return ExplicitMatrix(rel)
        return MappingTable(rel)
    if isstr(rel) or isinstance(rel, os.PathLike):
        return MappingFile(rel)
    raise MappingResolutionError(
        f"Cannot derive a relation from an object of type {type(rel).__name__}"
    )


def _column(table: pd.DataFrame, col):
    if col in table.columns:
        return col
    if isinstance(col, int) and 0 <= col < len(table.columns):
        return table.columns[col]
    raise MappingResolutionError(
        f"Column `{col}` not found in mapping with columns: "
        + ", ".join(map(str, table.columns))
    )


def source_column(table: pd.DataFrame, items, partrel=False, reporter=None):
    """
    Find the column of `table` holding the source labels `items`.

    Without `partrel` the distinct values of the column need to equal `items`,
    with `partrel` it is enough that one set contains the other.
    """
    items = set(items)

    def matches(values):
        values = set(values)
        if not partrel:
            return values == items
        return bool(values & items) and (values >= items or values <= items)

    candidates = [col for col in table.columns if matches(table[col].unique())]
    if not candidates:
        raise MappingResolutionError(
            "Could not find matching 'from' column in mapping!"
        )
    if len(candidates) > 1:
        (reporter or logger()).warning(
            "Several columns match the data, using the first one of: %s",
            ", ".join(map(str, candidates)),
        )
    return candidates[0]


def target_column(table: pd.DataFrame, from_):
    """
    Column following `from_`, or the one before if `from_` is the last column.
    """
    pos = table.columns.get_loc(from_)
    if pos < len(table.columns) - 1:
        return table.columns[pos + 1]
    if pos > 0:
        return table.columns[pos - 1]
    return from_


def mapping_matrix(table: pd.DataFrame, from_, to) -> pd.DataFrame:
    """
    1-0 relation matrix from the `from_` to the `to` column of `table`.

    Rows and columns follow the order of first appearance.
    """
    source = table[from_].to_numpy()
    target = table[to].to_numpy()
    rows = pd.Index(pd.unique(target), name=to)
    cols = pd.Index(pd.unique(source), name=from_)

    m = np.zeros((len(rows), len(cols)))
    m[rows.get_indexer(target), cols.get_indexer(source)] = 1
    return pd.DataFrame(m, index=rows, columns=cols)


def build_relation(rel, items, from_=None, to=None, partrel=False, reporter=None):
    """
    Derive the relation matrix for aggregating `items`.

    Parameters
    ----------
    rel : ExplicitMatrix, MappingTable, MappingFile or raw equivalent
        relation in any supported form, see `as_relation`
    items : sequence
        labels of the axis to be aggregated
    from_ : str or int, optional
        source column of a mapping, detected from `items` if not given
    to : str or int, optional
        target column of a mapping; several columns can be joined with "+",
        as in "region+global", to stack their relations
    partrel : bool, default False
        only require partial overlap between source column and `items`
    reporter : logging.Logger-like, optional
        receives warnings

    Returns
    -------
    pd.DataFrame or np.ndarray

    Raises
    ------
    MappingResolutionError
        if the mapping cannot be read or no source column matches
    """
    # explicit columns always refer to a mapping
    mapped = from_ is not None or to is not None
    rel = as_relation(rel, items=None if mapped else items, partrel=partrel)
    if isinstance(rel, ExplicitMatrix):
        matrix = rel.matrix
        if isinstance(matrix, pd.DataFrame) and not (
            isinstance(matrix.index, pd.RangeIndex)
            and isinstance(matrix.columns, pd.RangeIndex)
        ):
            return matrix.astype(float)
        return np.asarray(matrix, dtype=float)

    table = rel.load() if isinstance(rel, MappingFile) else rel.table
    if table.empty:
        raise MappingResolutionError("Mapping is empty")

    if from_ is None:
        from_ = source_column(table, items, partrel=partrel, reporter=reporter)
    else:
        from_ = _column(table, from_)

    if isstr(to) and "+" in to:
        targets = [_column(table, t) for t in to.split("+")]
        report(
            2,
            "Stacking relations to columns %s",
            ", ".join(map(str, targets)),
            reporter=reporter,
        )
        return pd.concat([mapping_matrix(table, from_, t) for t in targets])

    to = target_column(table, from_) if to is None else _column(table, to)
    return mapping_matrix(table, from_, to)
