import logging
from pathlib import Path
from typing import TypeAlias

import pandas as pd


Pathy: TypeAlias = str | Path

_logger = None

# names of the three axes in dimension order
AXES = ("spatial", "temporal", "data")

# separator of the joined form of compound labels
SEP = "."

# verbosity -> logging level, anything above 2 is silent
_levels = {
    -1: logging.ERROR,
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def logger():
    """
    Global Logger used for relagg.
    """
    global _logger
    if _logger is None:
        logging.basicConfig()
        _logger = logging.getLogger("relagg")
        _logger.setLevel("INFO")
    return _logger


def report(verbosity, msg, *args, reporter=None):
    """
    Emit `msg` on `reporter` with the severity encoded by `verbosity`.

    Parameters
    ----------
    verbosity : int
        -1 = error, 0 = warning, 1 = note, 2 = additional information,
        anything larger suppresses the message
    msg : str
        message, formatted lazily with `args`
    reporter : logging.Logger-like, optional
        defaults to the package logger
    """
    level = _levels.get(max(int(verbosity), -1))
    if level is None:
        return
    (reporter or logger()).log(level, msg, *args)


def isstr(x):
    """
    Returns True if x is a string.
    """
    return isinstance(x, str)


def isnum(s):
    """
    Returns True if s is a number.
    """
    try:
        float(s)
        return True
    except (TypeError, ValueError):
        return False


def join_label(label, sep=SEP):
    """
    Joined string form of a compound label, other labels are returned as is.
    """
    if isinstance(label, tuple):
        return sep.join(str(x) for x in label)
    return label


def pd_read(f, *args, **kwargs):
    """
    Read a CSV or XLSX table with pandas, the format is told by the suffix.
    """
    if str(f).endswith("csv"):
        return pd.read_csv(f, *args, **kwargs)
    return pd.read_excel(f, *args, **kwargs)


def pd_write(df, f, *args, **kwargs):
    """
    Write a table to CSV or XLSX, the format is told by the suffix.

    The index is written only for compound indexes, unless `index` is given.
    """
    kwargs.setdefault("index", isinstance(df.index, pd.MultiIndex))
    if str(f).endswith("csv"):
        df.to_csv(f, *args, **kwargs)
        return
    with pd.ExcelWriter(f) as writer:
        df.to_excel(writer, *args, **kwargs)
