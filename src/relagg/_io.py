"""Provides helper functions for reading input data, mappings and configuration
files.

The default configuration values are provided in relagg.RC_DEFAULTS.
"""

import os
from collections.abc import Mapping

import numpy as np
import pandas as pd
import yaml

from .dimensions import labeled
from .utils import isstr, pd_read


RC_DEFAULTS = """
aggregate:
    dim: 1
    from: null
    to: null
    wdim: null
    partrel: false
    negative_weight: warn
    mixed_aggregation: false
    verbosity: 1
io:
    spatial: region
    temporal: year
    value: value
"""


def _recursive_update(d, u):
    for k, v in u.items():
        if isinstance(v, Mapping):
            r = _recursive_update(d.get(k, {}), v)
            d[k] = r
        else:
            d[k] = u[k]
    return d


def read_mapping(f, *args, **kwargs):
    """Read a mapping table, supports CSV (with any common separator) and XLSX

    Parameters
    ----------
    f : string or Path
        the file to read in
    args, kwargs : sent directly to the Pandas read function

    Returns
    -------
    df : pd.DataFrame
    """
    if str(f).endswith("csv"):
        kwargs.setdefault("sep", None)
        kwargs.setdefault("engine", "python")
    df = pd_read(str(f), *args, **kwargs)
    # header cells like years are read as numbers
    return df.rename(columns=str)


def from_frame(df, spatial="region", temporal="year", value="value"):
    """Convert a long-format table into a three-dimensional DataArray

    Parameters
    ----------
    df : pd.DataFrame
        table with one row per value
    spatial, temporal : string
        columns holding the labels of the spatial and temporal axis
    value : string
        column holding the values; all other columns form the data axis, as
        a compound axis if there are several

    Returns
    -------
    xr.DataArray
    """
    data_cols = [c for c in df.columns if c not in (spatial, temporal, value)]
    if not data_cols:
        df = df.assign(data=value)
        data_cols = ["data"]

    indexes = {
        spatial: pd.Index(df[spatial].unique(), name=spatial),
        temporal: pd.Index(df[temporal].unique(), name=temporal),
    }
    positions = [
        indexes[spatial].get_indexer(df[spatial]),
        indexes[temporal].get_indexer(df[temporal]),
    ]
    if len(data_cols) == 1:
        (col,) = data_cols
        indexes[col] = pd.Index(df[col].unique(), name=col)
        positions.append(indexes[col].get_indexer(df[col]))
    else:
        indexes["data"] = pd.MultiIndex.from_frame(df[data_cols].drop_duplicates())
        positions.append(
            indexes["data"].get_indexer(pd.MultiIndex.from_frame(df[data_cols]))
        )

    values = np.full([len(index) for index in indexes.values()], np.nan)
    values[tuple(positions)] = df[value].to_numpy(dtype=float)
    return labeled(values, indexes, name=value)


def to_frame(da, value="value"):
    """Convert a three-dimensional DataArray into a long-format table"""
    return da.to_series().rename(value).reset_index()


def read_data(f, spatial="region", temporal="year", value="value"):
    """Read a long-format table from CSV or XLSX into a DataArray"""
    return from_frame(pd_read(str(f)), spatial=spatial, temporal=temporal, value=value)


class RunControl(Mapping):
    """A thin wrapper around a Python Dictionary to support configuration of
    aggregation. Input can be provided as dictionaries or YAML files.
    """

    def __init__(self, rc=None, defaults=None):
        """
        Parameters
        ----------
        rc : string, file, dictionary, optional
            a path to a YAML file, a file handle for a YAML file, or a
            dictionary describing run control configuration
        defaults : string, file, dictionary, optional
            a path to a YAML file, a file handle for a YAML file, or a
            dictionary describing **default** run control configuration
        """
        rc = rc or {}
        defaults = defaults or RC_DEFAULTS

        rc = self._load_yaml(rc)
        defaults = self._load_yaml(defaults)
        self.store = _recursive_update(defaults, rc)

    def __getitem__(self, k):
        return self.store[k]

    def __iter__(self):
        return iter(self.store)

    def __len__(self):
        return len(self.store)

    def __repr__(self):
        return self.store.__repr__()

    def _load_yaml(self, obj):
        if hasattr(obj, "read"):  # it's a file
            obj = obj.read()
        if isstr(obj) and os.path.exists(obj):
            with open(obj) as f:
                obj = f.read()
        if not isinstance(obj, dict):
            obj = yaml.safe_load(obj) or {}
        return obj

    def recursive_update(self, k, d):
        """Recursively update a top-level option in the run control

        Parameters
        ----------
        k : string
            the top-level key
        d : dictionary or similar
            the dictionary to use for updating
        """
        u = self.__getitem__(k)
        self.store[k] = _recursive_update(u, d)

    def update_aggregate(self, **options):
        """Override options of the `aggregate` section

        Options which are None are skipped, `from_` is stored as `from`.
        """
        options = {k: v for k, v in options.items() if v is not None}
        if "from_" in options:
            options["from"] = options.pop("from_")
        self.recursive_update("aggregate", options)

    def aggregate_options(self, **overrides):
        """Keyword arguments for `aggregate` and `aggregate_weighted`

        Parameters
        ----------
        overrides : optional
            take precedence over the `aggregate` section
        """
        options = dict(self["aggregate"])
        options["from_"] = options.pop("from", None)
        options.update(overrides)
        return options
