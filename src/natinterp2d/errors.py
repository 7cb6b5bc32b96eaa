"""Exceptions raised by natural neighbor interpolation."""

from typing import Optional


class InterpolationError(Exception):
    """Base class of all errors reported by :mod:`natinterp2d`."""


class InsufficientSitesError(InterpolationError, ValueError):
    """Fewer than three sites, or all sites collinear: no triangulation exists."""


class LocateError(InterpolationError):
    """The point location walk exceeded its step limit.

    This signals a corrupted triangulation or a floating point cycle.
    """


class NeighborRingOverflowError(InterpolationError):
    """More natural neighbors than the workspace can hold.

    Args:
        capacity: The configured maximum number of natural neighbors.
    """

    def __init__(self, capacity: int, message: Optional[str] = None):
        self.capacity = capacity
        if message is None:
            message = (
                f'More than {capacity} natural neighbors; increase max_neighbors '
                f'or check for highly co-circular sites')
        super().__init__(message)


class OutOfHullError(InterpolationError):
    """The query point lies outside the convex hull and extrapolation is disabled.

    Args:
        point: The offending query point, in input coordinates.
    """

    def __init__(self, point):
        self.point = tuple(float(c) for c in point)
        super().__init__(f'Query point {self.point} lies outside the convex hull of the sites')
