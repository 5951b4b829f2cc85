"""
pytest configuration and shared fixtures.

Datasets mimic the field data pymixed is built for: a strictly positive
response sampled over a handful of years, with a covariate whose effect
is quadratic on the log scale.
"""

import numpy as np
import pandas as pd
import pytest

from pymixed.data import ObservationTable
from pymixed.mixed import ModelSpecification, quadratic


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture(scope="session")
def field_frame():
    """200 rows, 4 years, log(y) = 1 + 0.4 X - 0.03 X² + b_year + ε.

    Year SD 0.5, residual SD 0.3.
    """
    rng = np.random.default_rng(42)
    n_years, per_year = 4, 50
    years = np.repeat(np.arange(2001, 2001 + n_years), per_year)
    b = rng.normal(0.0, 0.5, size=n_years)
    X = rng.uniform(0.0, 10.0, size=n_years * per_year)
    log_y = (
        1.0 + 0.4 * X - 0.03 * X**2
        + b[years - 2001]
        + rng.normal(0.0, 0.3, size=n_years * per_year)
    )
    return pd.DataFrame({
        'year': years,
        'X': X,
        'X2': X**2,
        'abundance': np.exp(log_y),
    })


@pytest.fixture(scope="session")
def field_table(field_frame):
    return ObservationTable.from_dataframe(
        field_frame, response='abundance', group='year', covariates=['X', 'X2'],
    )


@pytest.fixture(scope="session")
def null_spec():
    return ModelSpecification.null('abundance', 'year')


@pytest.fixture(scope="session")
def quad_spec():
    return ModelSpecification('abundance', 'year', terms=quadratic('X', 'X2'))


@pytest.fixture(scope="session")
def count_frame():
    """160 rows, 8 sites, counts ~ Poisson(exp(0.5 + 0.3 X + b_site))."""
    rng = np.random.default_rng(7)
    n_sites, per_site = 8, 20
    site = np.repeat([f"site{i}" for i in range(n_sites)], per_site)
    b = rng.normal(0.0, 0.4, size=n_sites)
    X = rng.normal(0.0, 1.0, size=n_sites * per_site)
    eta = 0.5 + 0.3 * X + np.repeat(b, per_site)
    return pd.DataFrame({
        'site': site,
        'X': X,
        'count': rng.poisson(np.exp(eta)),
    })


@pytest.fixture(scope="session")
def count_table(count_frame):
    return ObservationTable.from_dataframe(
        count_frame, response='count', group='site', transform='identity',
    )


@pytest.fixture(scope="session")
def count_spec():
    return ModelSpecification('count', 'site', terms=('X',), family='poisson')
