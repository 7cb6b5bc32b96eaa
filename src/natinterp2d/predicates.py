"""Geometric predicates in the plane.

All predicates take points as pairs of floats (tuples or length-2 arrays). The orientation
and circumcircle tests compare the determinant against a tolerance relative to the magnitude
of its terms, so results do not depend on the scale of the coordinates. With ``eps=0`` the
tests reduce to plain sign checks.
"""

import enum

import numpy as np

DEFAULT_EPSILON = 1e-12


class Orientation(enum.IntEnum):
    RIGHT = -1
    COLLINEAR = 0
    LEFT = 1


class Circle(enum.IntEnum):
    OUTSIDE = -1
    ON = 0
    INSIDE = 1


class Containment(enum.IntEnum):
    OUTSIDE = 0
    INSIDE = 1
    EDGE = 2
    VERTEX = 3


def orientation_det(a, b, c):
    """Twice the signed area of triangle (a, b, c), positive if counterclockwise."""
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


def orientation(a, b, c, eps=DEFAULT_EPSILON) -> Orientation:
    """Turn direction of the path a -> b -> c.

    The path is considered collinear if the cross product of (b - a) and (c - a) is within
    ``eps`` times the product of the L1 lengths of the two vectors.
    """
    abx = b[0] - a[0]
    aby = b[1] - a[1]
    acx = c[0] - a[0]
    acy = c[1] - a[1]
    det = abx * acy - aby * acx
    tol = eps * (abs(abx) + abs(aby)) * (abs(acx) + abs(acy))
    if det > tol:
        return Orientation.LEFT
    if det < -tol:
        return Orientation.RIGHT
    return Orientation.COLLINEAR


def in_circumcircle(a, b, c, p, eps=DEFAULT_EPSILON) -> Circle:
    """Position of p relative to the circle through a, b and c.

    Uses the lifted 3x3 determinant with rows translated to p. The sign is corrected for the
    orientation of (a, b, c), so the vertices may be given in either order. A degenerate
    (collinear) triangle has no circumcircle and everything is reported OUTSIDE.
    """
    ccw = orientation_det(a, b, c)
    if ccw == 0:
        return Circle.OUTSIDE

    adx = a[0] - p[0]
    ady = a[1] - p[1]
    bdx = b[0] - p[0]
    bdy = b[1] - p[1]
    cdx = c[0] - p[0]
    cdy = c[1] - p[1]

    alift = adx * adx + ady * ady
    blift = bdx * bdx + bdy * bdy
    clift = cdx * cdx + cdy * cdy

    bc = bdx * cdy - cdx * bdy
    ca = cdx * ady - adx * cdy
    ab = adx * bdy - bdx * ady
    det = alift * bc + blift * ca + clift * ab
    if ccw < 0:
        det = -det

    permanent = (
        alift * (abs(bdx * cdy) + abs(cdx * bdy))
        + blift * (abs(cdx * ady) + abs(adx * cdy))
        + clift * (abs(adx * bdy) + abs(bdx * ady)))
    tol = eps * permanent
    if det > tol:
        return Circle.INSIDE
    if det < -tol:
        return Circle.OUTSIDE
    return Circle.ON


def point_in_triangle(p, a, b, c, eps=DEFAULT_EPSILON):
    """Classify p against the counterclockwise triangle (a, b, c).

    Edge ``j`` of the triangle is the one opposite vertex ``j``, e.g. edge 0 runs from b to c.

    Returns:
        A pair ``(containment, index)``. For ``Containment.EDGE`` the index is the edge p lies
        on, for ``Containment.VERTEX`` the vertex p coincides with, and for
        ``Containment.OUTSIDE`` the first edge that has p on its outer side. For
        ``Containment.INSIDE`` the index is -1.
    """
    verts = (a, b, c)
    n_on = 0
    on_edges = [-1, -1]
    for j in range(3):
        side = orientation(verts[(j + 1) % 3], verts[(j + 2) % 3], p, eps)
        if side == Orientation.RIGHT:
            return Containment.OUTSIDE, j
        if side == Orientation.COLLINEAR:
            if n_on < 2:
                on_edges[n_on] = j
            n_on += 1

    if n_on == 0:
        return Containment.INSIDE, -1
    if n_on == 1:
        return Containment.EDGE, on_edges[0]
    if n_on == 2:
        # The vertex shared by the two edges is the one opposite neither of them
        return Containment.VERTEX, 3 - on_edges[0] - on_edges[1]
    # Degenerate triangle, resolve to the nearest vertex
    dists = [(v[0] - p[0]) ** 2 + (v[1] - p[1]) ** 2 for v in verts]
    return Containment.VERTEX, int(np.argmin(dists))


def circumcenter(a, b, c):
    """Circumcenter of triangle (a, b, c) as a pair of floats.

    Computed relative to ``a`` to limit cancellation. Returns (inf, inf) for collinear input.
    """
    bx = b[0] - a[0]
    by = b[1] - a[1]
    cx = c[0] - a[0]
    cy = c[1] - a[1]
    d = 2.0 * (bx * cy - by * cx)
    if d == 0:
        return np.inf, np.inf
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy
    ux = (cy * b2 - by * c2) / d
    uy = (bx * c2 - cx * b2) / d
    return a[0] + ux, a[1] + uy


def circumcenters(points: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """Circumcenters of many triangles at once.

    Args:
        points: Site coordinates. Shape (N, 2).
        triangles: Vertex indices of the triangles. Shape (T, 3).

    Returns:
        The circumcenters. Shape (T, 2).
    """
    a = points[triangles[:, 0]]
    b = points[triangles[:, 1]] - a
    c = points[triangles[:, 2]] - a
    d = 2.0 * (b[:, 0] * c[:, 1] - b[:, 1] * c[:, 0])
    b2 = np.sum(b ** 2, axis=1)
    c2 = np.sum(c ** 2, axis=1)
    with np.errstate(divide='ignore', invalid='ignore'):
        ux = (c[:, 1] * b2 - b[:, 1] * c2) / d
        uy = (b[:, 0] * c2 - c[:, 0] * b2) / d
    return a + np.stack([ux, uy], axis=1)
