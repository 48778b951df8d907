"""
Test Suite for EDA Module
=========================

Tests for bivariate regressions and the EDA report.
"""

import pytest
import numpy as np
import pandas as pd

from playstore.eda import fit_bivariate_regressions, generate_eda_report


@pytest.fixture
def merged():
    """Merged table where log installs depend on rating only."""
    rng = np.random.default_rng(0)
    n = 120
    rating = rng.uniform(1, 5, size=n)
    installs = np.exp(2.0 * rating + 3.0)
    return pd.DataFrame({
        'App': [f"app_{i}" for i in range(n)],
        'Category': rng.choice(['GAME', 'TOOLS', 'SOCIAL'], size=n),
        'Installs': installs,
        'log_installs': np.log(installs),
        'Rating': rating,
        'average_polarity': rng.uniform(-1, 1, size=n),
        'Price': np.zeros(n),
    })


class TestBivariateRegressions:
    """Tests for fit_bivariate_regressions."""

    def test_exact_relationship(self, merged):
        table = fit_bivariate_regressions(merged, ['Rating', 'average_polarity'])

        assert table.loc['Rating', 'slope'] == pytest.approx(2.0)
        assert table.loc['Rating', 'intercept'] == pytest.approx(3.0)
        assert table.loc['Rating', 'r_squared'] == pytest.approx(1.0)
        assert table.loc['average_polarity', 'r_squared'] < 0.2
        assert table.loc['Rating', 'n'] == 120

    def test_skips_constant_predictor(self, merged):
        table = fit_bivariate_regressions(merged, ['Price', 'Rating'])
        assert list(table.index) == ['Rating']

    def test_pairwise_missing(self, merged):
        with_gaps = merged.assign(Rating=merged['Rating'].where(merged.index % 2 == 0))
        table = fit_bivariate_regressions(with_gaps, ['Rating'])
        assert table.loc['Rating', 'n'] == 60


class TestEdaReport:
    """Tests for generate_eda_report."""

    def test_writes_figures(self, merged, tmp_path):
        report = generate_eda_report(
            merged, predictors=['Rating', 'average_polarity'], output_dir=str(tmp_path)
        )

        assert report['figures'] == [
            "01_install_distribution.png",
            "02_bivariate_relationships.png",
            "03_correlation_matrix.png",
            "04_category_installs.png",
        ]
        for name in report['figures']:
            assert (tmp_path / name).exists()

        assert report['correlation_matrix'].loc['log_installs', 'Rating'] == pytest.approx(1.0)
        assert set(report['category_medians'].index) == {'GAME', 'TOOLS', 'SOCIAL'}

    def test_default_predictors(self, merged, tmp_path):
        report = generate_eda_report(merged, output_dir=str(tmp_path))
        assert report['predictors'] == ['Rating', 'Price', 'average_polarity']


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
