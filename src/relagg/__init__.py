from importlib.metadata import version as _version

from relagg._io import *  # noqa: F401, F403
from relagg.core import *  # noqa: F401, F403
from relagg.contraction import contract  # noqa: F401
from relagg.convenience import reaggregate  # noqa: F401
from relagg.dimensions import AxisRef, expand_relation, resolve_dim  # noqa: F401
from relagg.errors import *  # noqa: F401, F403
from relagg.relation import *  # noqa: F401, F403


try:
    __version__ = _version("relagg")
except Exception:
    # Local copy or not installed with setuptools.
    # Disable minimum version checks on downstream libraries.
    __version__ = "999"
