"""Natural neighbor interpolation in 2D.

Sibson coordinates are computed without inserting the query point into the triangulation,
following the area-stealing algorithm of G.W. Lucas :footcite:`lucas2021fast`.
"""

from natinterp2d.natinterp2d import Interpolator, interpolate, get_weights
from natinterp2d.config import ExtrapolationPolicy, InterpolatorConfig
from natinterp2d.errors import (
    InsufficientSitesError,
    InterpolationError,
    LocateError,
    NeighborRingOverflowError,
    OutOfHullError,
)

try:
    from ._version import version as __version__
except ImportError:
    __version__ = '0.0.0'
