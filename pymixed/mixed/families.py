"""
Response families for random-intercept models.

Each Family defines the inverse link used to put linear predictors on the
response scale, and the pieces PIRLS needs: variance function, deviance,
log-likelihood and starting values.

References:
    McCullagh, P., & Nelder, J. A. (1989). Generalized Linear Models (2nd ed.)
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray
from scipy.special import gammaln


class Family(ABC):
    """Response distribution with a fixed link."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def link_name(self) -> str:
        ...

    @property
    @abstractmethod
    def has_dispersion(self) -> bool:
        """Whether the family carries a residual variance parameter."""
        ...

    @abstractmethod
    def linkinv(self, eta: NDArray) -> NDArray:
        """g⁻¹(η) → μ."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Gaussian(Family):
    """Gaussian family with identity link. Fit by profiled (RE)ML."""

    @property
    def name(self) -> str:
        return 'gaussian'

    @property
    def link_name(self) -> str:
        return 'identity'

    @property
    def has_dispersion(self) -> bool:
        return True

    def linkinv(self, eta: NDArray) -> NDArray:
        return np.asarray(eta, dtype=np.float64)


class Poisson(Family):
    """Poisson family. Link: log.

    V(μ) = μ
    Deviance = 2 * Σ [y_i log(y_i/μ_i) - (y_i - μ_i)]
    """

    @property
    def name(self) -> str:
        return 'poisson'

    @property
    def link_name(self) -> str:
        return 'log'

    @property
    def has_dispersion(self) -> bool:
        return False

    def linkinv(self, eta: NDArray) -> NDArray:
        return np.exp(np.asarray(eta, dtype=np.float64))

    def variance(self, mu: NDArray) -> NDArray:
        return np.maximum(mu, 1e-10)

    def initialize(self, y: NDArray) -> NDArray:
        # y + 0.1 floor to avoid log(0)
        return np.maximum(y, 0.1)

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        mu = np.maximum(mu, 1e-10)
        with np.errstate(divide='ignore', invalid='ignore'):
            term = np.where(y > 0, y * np.log(y / mu), 0.0)
        return 2.0 * float(np.sum(term - (y - mu)))

    def log_likelihood(self, y: NDArray, mu: NDArray) -> float:
        mu = np.maximum(mu, 1e-10)
        return float(np.sum(y * np.log(mu) - mu - gammaln(y + 1)))


FAMILIES: dict[str, type[Family]] = {
    'gaussian': Gaussian,
    'poisson': Poisson,
}


def resolve_family(name: str) -> Family:
    """Family instance for a family name."""
    try:
        return FAMILIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown family: {name!r}. Available: {list(FAMILIES)}"
        ) from None
