from ._io import RunControl
from .core import aggregate, aggregate_weighted


def reaggregate(x, rel, weight=None, rc=None, **kwargs):
    """
    (Dis-)aggregate `x` with options from a run control.

    Options are taken from the `aggregate` section of the run control and
    can be overwritten by keyword arguments.

    Parameters
    ----------
    x : xr.DataArray
        data with spatial, temporal and data dimension
    rel : relation matrix, mapping table or mapping file
    weight : xr.DataArray, optional
        if given, a weighted (dis-)aggregation is performed
    rc : string, file, dictionary, optional
        run control, see `RunControl`
    **kwargs
        options for `aggregate` or `aggregate_weighted`

    Returns
    -------
    xr.DataArray
    """
    options = RunControl(rc).aggregate_options(**kwargs)

    if weight is None:
        for key in ("wdim", "negative_weight", "mixed_aggregation"):
            options.pop(key, None)
        return aggregate(x, rel, **options)

    return aggregate_weighted(x, rel, weight, **options)
