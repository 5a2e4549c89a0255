import numpy as np
from scipy.interpolate import CubicHermiteSpline
from typing import Optional, Set, Tuple
import logging

from ..utils.validation import FitError, validate_loess_params

logger = logging.getLogger(__name__)


class Loess:
    """
    Local regression (LOESS) of a single response on a single predictor.

    Each fitted value is the intercept of a weighted least-squares polynomial
    fit centred on the query point. The neighbourhood holds the ``floor(n * span)``
    nearest observations; its radius is the distance to the farthest of them,
    multiplied by ``span`` when ``span`` exceeds 1. Observations are weighted
    with the tricube kernel.

    Two surfaces are available:

    - ``direct`` evaluates the local fit exactly at every query point, inside
      or outside the range of the observations.
    - ``interpolated-surface`` evaluates local fits (value and slope) only at
      the vertices of a kd-tree built over the observations and blends them
      with cubic Hermite polynomials. It is undefined (NaN) outside the
      range of the observations.

    Args:
        span: Neighbourhood size as a fraction of the observations
        degree: Degree of the local polynomial (0, 1 or 2)
        surface: 'interpolated-surface' or 'direct'
        cell: Maximum fraction of the neighbourhood held by a kd-tree cell
    """

    # Widening of the kd-tree bounding box, as a fraction of the data range
    BOX_MARGIN = 0.005

    def __init__(self, span: float = 0.75, degree: int = 2,
                 surface: str = 'interpolated-surface', cell: float = 0.2):
        validate_loess_params(span, degree, surface)
        self.span = float(span)
        self.degree = degree
        self.surface = surface
        self.cell = cell

        self.x_: Optional[np.ndarray] = None
        self.y_: Optional[np.ndarray] = None
        self.q_: int = 0
        self.vertices_: Optional[np.ndarray] = None
        self._spline: Optional[CubicHermiteSpline] = None

    def fit(self, x, y) -> 'Loess':
        """
        Fit the model to observations.

        Args:
            x: Predictor values (years)
            y: Response values

        Returns:
            The fitted model

        Raises:
            FitError: If the observations cannot support the local polynomial
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if x.shape != y.shape or x.ndim != 1:
            raise FitError(f"x and y must be 1-D arrays of equal length, got {x.shape} and {y.shape}",
                           stage='fit')

        not_finite = ~(np.isfinite(x) & np.isfinite(y))
        if not_finite.any():
            raise FitError("Observations must be finite", stage='fit', rows=x[not_finite].tolist())

        n = len(x)
        distinct = np.unique(x)
        if len(distinct) < 2:
            raise FitError(f"At least 2 distinct predictor values are required, got {len(distinct)}",
                           stage='fit', rows=distinct.tolist())
        if len(distinct) < self.degree + 1:
            raise FitError(
                f"Degree {self.degree} needs at least {self.degree + 1} distinct predictor values, "
                f"got {len(distinct)}",
                stage='fit', rows=distinct.tolist()
            )

        q = min(n, int(np.floor(n * self.span + 1e-10)))
        if q < self.degree + 1:
            raise FitError(
                f"Span {self.span} too small: {q} of {n} observations per neighbourhood, "
                f"fewer than the {self.degree + 1} coefficients of a degree {self.degree} fit",
                stage='fit'
            )

        order = np.argsort(x, kind='mergesort')
        self.x_ = x[order]
        self.y_ = y[order]
        self.q_ = q
        logger.debug(f"Fitting LOESS: n={n}, span={self.span}, q={q}, degree={self.degree}, "
                     f"surface={self.surface}")

        if self.surface == 'interpolated-surface':
            self.vertices_ = self._build_vertices()
            fits = [self._local_fit(v) for v in self.vertices_]
            values = np.array([f[0] for f in fits])
            slopes = np.array([f[1] for f in fits])
            self._spline = CubicHermiteSpline(self.vertices_, values, slopes, extrapolate=False)
            logger.debug(f"Interpolated surface built on {len(self.vertices_)} vertices")
        else:
            self.vertices_ = None
            self._spline = None

        return self

    def predict(self, x_new) -> np.ndarray:
        """
        Evaluate the fitted surface.

        Args:
            x_new: Query points

        Returns:
            Fitted values; NaN where the interpolated surface is undefined
        """
        if self.x_ is None:
            raise FitError("Model has not been fitted", stage='predict')

        x_new = np.atleast_1d(np.asarray(x_new, dtype=float))
        if self.surface == 'direct':
            return np.array([self._local_fit(x0)[0] for x0 in x_new])

        values = np.asarray(self._spline(x_new), dtype=float)
        # The blended surface is only defined over the range of the observations
        values[(x_new < self.x_[0]) | (x_new > self.x_[-1])] = np.nan
        return values

    def fitted_values(self) -> np.ndarray:
        """Fitted values at the observations."""
        return self.predict(self.x_)

    def _local_fit(self, x0: float) -> Tuple[float, float]:
        """Weighted polynomial fit centred on x0; returns (value, slope) at x0."""
        distances = np.abs(self.x_ - x0)
        radius = np.partition(distances, self.q_ - 1)[self.q_ - 1] * max(1.0, self.span)
        if radius <= 0:
            raise FitError(f"Neighbourhood radius is zero at {x0}", stage='fit', rows=[x0])

        u = distances / radius
        weights = np.where(u < 1, (1 - u ** 3) ** 3, 0.0)
        t = (self.x_ - x0) / radius
        design = np.vander(t, self.degree + 1, increasing=True)

        root_w = np.sqrt(weights)
        coef, _, rank, _ = np.linalg.lstsq(design * root_w[:, None], self.y_ * root_w, rcond=None)
        if rank < self.degree + 1:
            logger.warning(f"Pseudoinverse used at {x0}: local design has rank {rank}")

        slope = coef[1] / radius if self.degree >= 1 else 0.0
        return float(coef[0]), float(slope)

    def _build_vertices(self) -> np.ndarray:
        """Vertices of a 1-D kd-tree over the observations, bounding box included."""
        lo, hi = self.x_[0], self.x_[-1]
        margin = self.BOX_MARGIN * (hi - lo)
        vertices = {lo - margin, hi + margin}

        max_points = max(1, int(np.floor(len(self.x_) * self.span * self.cell)))
        self._split_cell(self.x_, lo - margin, hi + margin, max_points, vertices)
        return np.array(sorted(vertices))

    def _split_cell(self, points: np.ndarray, lower: float, upper: float,
                    max_points: int, vertices: Set[float]) -> None:
        """Split a cell at its lower-median observation until it holds at most max_points."""
        if len(points) <= max_points:
            return
        m = (len(points) - 1) // 2
        cut = float(points[m])
        # A cut on the cell boundary would not shrink the cell
        if cut == lower or cut == upper:
            return
        vertices.add(cut)
        self._split_cell(points[:m + 1], lower, cut, max_points, vertices)
        self._split_cell(points[m + 1:], cut, upper, max_points, vertices)
