"""Configuration of the natural neighbor interpolator."""

import dataclasses
import enum
import math
from typing import Union


class ExtrapolationPolicy(enum.Enum):
    """What to do with query points outside the convex hull of the sites.

    ERROR: raise :class:`~natinterp2d.errors.OutOfHullError`.
    LINEAR: blend the values of the nearest hull edge's endpoints.
    FILL: return no weights and ``fill_value`` as the interpolated value.
    """

    ERROR = 'error'
    LINEAR = 'linear'
    FILL = 'fill'


@dataclasses.dataclass(frozen=True)
class InterpolatorConfig:
    """Options of :class:`~natinterp2d.Interpolator`.

    Args:
        extrapolation: Policy for queries outside the convex hull. Extrapolation is never
            implicit, the default raises an error.
        max_neighbors: Capacity of the per-thread natural neighbor ring. Queries needing more
            neighbors fail with :class:`~natinterp2d.errors.NeighborRingOverflowError`.
        epsilon: Relative tolerance of the orientation and circumcircle predicates.
        area_floor: Relative floor of the total stolen area. Below ``area_floor`` times the
            squared extent of the sites, the query is treated as coinciding with a site.
        walk_factor: The point location walk is capped at ``walk_factor`` times the number of
            triangles (plus a small constant).
        fill_value: Result for points outside the hull under ``ExtrapolationPolicy.FILL``.
    """

    extrapolation: Union[ExtrapolationPolicy, str] = ExtrapolationPolicy.ERROR
    max_neighbors: int = 64
    epsilon: float = 1e-12
    area_floor: float = 1e-24
    walk_factor: int = 3
    fill_value: float = math.nan

    def __post_init__(self):
        # Frozen dataclass, so normalize through object.__setattr__
        object.__setattr__(self, 'extrapolation', ExtrapolationPolicy(self.extrapolation))
        if self.max_neighbors < 3:
            raise ValueError(f'max_neighbors must be at least 3, got {self.max_neighbors}')
        if not 0 <= self.epsilon < 1:
            raise ValueError(f'epsilon must be in [0, 1), got {self.epsilon}')
        if self.area_floor < 0:
            raise ValueError(f'area_floor must be non-negative, got {self.area_floor}')
        if self.walk_factor < 1:
            raise ValueError(f'walk_factor must be at least 1, got {self.walk_factor}')

    def with_options(self, **changes) -> 'InterpolatorConfig':
        """Return a copy with some options replaced, e.g. a larger ``max_neighbors``."""
        return dataclasses.replace(self, **changes)
