"""Implicit feedback ALS with confidence weighting."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np
from joblib import Parallel, delayed
from scipy.sparse import csc_matrix, csr_matrix

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def resolve_seed(seed: Optional[int]) -> int:
    """Return the configured seed, or a clock-derived one when unset.

    Runs without an explicit seed are not reproducible.
    """
    if seed is not None:
        return int(seed)
    return time.time_ns()


@dataclass
class ImplicitALSConfig:
    n_factors: int = 10
    regularisation: float = 0.01
    alpha: float = 1.0
    n_iterations: int = 20
    n_jobs: int = -1
    random_state: Optional[int] = None
    verbose: bool = False

    def validate(self) -> None:
        if self.n_factors <= 0:
            raise ConfigurationError(f"n_factors must be positive, got {self.n_factors}")
        if self.n_iterations <= 0:
            raise ConfigurationError(f"n_iterations must be positive, got {self.n_iterations}")
        # λ > 0 keeps every normal-equation matrix positive definite
        if self.regularisation < 0:
            raise ConfigurationError(
                f"regularisation must be non-negative, got {self.regularisation}"
            )


class ImplicitALS:
    """
    ALS for implicit feedback with confidence weighting.

    Uses the Hu, Koren, Volinsky approach:
    - Preference p_ui = 1 if r_ui > 0, else 0
    - Confidence c_ui = 1 + alpha * r_ui
    - Loss weighted by confidence

    Rows with no interactions stay at zero and are reported through
    `user_has_data` / `item_has_data` so callers can treat them as cold start.
    """

    def __init__(self, config: ImplicitALSConfig):
        config.validate()
        self.config = config
        self.seed: Optional[int] = None
        self.user_factors: Optional[np.ndarray] = None
        self.item_factors: Optional[np.ndarray] = None
        self.user_has_data: Optional[np.ndarray] = None
        self.item_has_data: Optional[np.ndarray] = None

    def _init_factors(self, n_users: int, n_items: int) -> None:
        # default_rng takes any 64-bit value, including nanosecond clock seeds
        rng = np.random.default_rng(self.seed % 2 ** 64)
        k = self.config.n_factors
        scale = 1.0 / np.sqrt(k)
        self.user_factors = rng.normal(0, scale, (n_users, k))
        self.item_factors = rng.normal(0, scale, (n_items, k))

    def _solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        try:
            return np.linalg.solve(A, b)
        except np.linalg.LinAlgError:
            # Only reachable with regularisation == 0
            logger.debug("Singular normal equations, using least squares")
            return np.linalg.lstsq(A, b, rcond=None)[0]

    def _update_row(
        self,
        row_idx: int,
        R: csr_matrix,
        Y: np.ndarray,
        YtY: np.ndarray
    ) -> np.ndarray:
        """Solve one row of the factor matrix being updated, `Y` held fixed."""
        k = self.config.n_factors

        start = R.indptr[row_idx]
        end = R.indptr[row_idx + 1]

        if start == end:
            return np.zeros(k)

        interacted = R.indices[start:end]
        interaction_counts = R.data[start:end]

        # Confidence is 1 for every entry; only add (c - 1) for interacted ones
        delta_c = self.config.alpha * interaction_counts

        Y_int = Y[interacted]
        correction = Y_int.T @ (delta_c[:, np.newaxis] * Y_int)

        A = YtY + correction + self.config.regularisation * np.eye(k)

        # RHS: Y^T @ (c * p) where p=1 for interacted, c=1+alpha*r
        c_p = 1 + self.config.alpha * interaction_counts
        b = Y_int.T @ c_p

        return self._solve(A, b)

    def _update_parallel(self, R: csr_matrix, Y: np.ndarray) -> np.ndarray:
        """Recompute every row of one side; returns only after all rows finish."""
        n_rows = R.shape[0]
        YtY = Y.T @ Y

        results = Parallel(n_jobs=self.config.n_jobs)(
            delayed(self._update_row)(i, R, Y, YtY)
            for i in range(n_rows)
        )

        return np.array(results).reshape(n_rows, self.config.n_factors)

    def _compute_loss(self, R: csr_matrix) -> float:
        """Weighted squared loss on all entries."""
        total_loss = 0.0

        for i in range(R.shape[0]):
            start = R.indptr[i]
            end = R.indptr[i + 1]

            predictions = self.user_factors[i] @ self.item_factors.T

            # Non-interacted items: c=1, p=0
            loss_zeros = np.sum(predictions ** 2)

            if start < end:
                items = R.indices[start:end]
                counts = R.data[start:end]

                loss_zeros -= np.sum(predictions[items] ** 2)

                # Interacted items: c=1+alpha*r, p=1
                c = 1 + self.config.alpha * counts
                errors = (1 - predictions[items]) ** 2
                total_loss += np.sum(c * errors)

            total_loss += loss_zeros

        reg_term = self.config.regularisation * (
            np.sum(self.user_factors ** 2) +
            np.sum(self.item_factors ** 2)
        )

        return float(total_loss + reg_term)

    def fit(self, R: csr_matrix) -> 'ImplicitALS':
        """
        Train implicit ALS.

        Args:
            R: (n_users, n_items) interaction counts
        """
        if R.nnz == 0:
            raise ConfigurationError("Interaction matrix cannot be empty")

        n_users, n_items = R.shape
        self.seed = resolve_seed(self.config.random_state)

        logger.info(f"Training Implicit ALS: {n_users} users, {n_items} items, {R.nnz} interactions")
        logger.info(
            f"Factors: {self.config.n_factors}, λ: {self.config.regularisation}, "
            f"α: {self.config.alpha}, iterations: {self.config.n_iterations}, seed: {self.seed}"
        )

        self._init_factors(n_users, n_items)

        R_csr = csr_matrix(R, dtype=np.float64)
        # Item phase walks columns: CSC of R is the CSR of R^T
        R_t: csr_matrix = csc_matrix(R_csr).T.tocsr()

        for iteration in range(self.config.n_iterations):
            iter_start = time.time()

            self.user_factors = self._update_parallel(R_csr, self.item_factors)
            self.item_factors = self._update_parallel(R_t, self.user_factors)

            message = f"Iteration {iteration + 1:2d} | Time: {time.time() - iter_start:.2f}s"
            if self.config.verbose:
                message += f" | Loss: {self._compute_loss(R_csr):,.4f}"
            logger.info(message)

        self.user_has_data = np.diff(R_csr.indptr) > 0
        self.item_has_data = np.diff(R_t.indptr) > 0
        return self

