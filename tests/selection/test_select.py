"""
Tests for select() and SelectionReport.

Validates:
    - ranking, deltas and the indistinguishability threshold
    - delta_null when the null model is among the candidates
    - incomparable candidate sets are refused
    - the 200-row end-to-end comparison is deterministic
"""

from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from pymixed.core.exceptions import IncomparableModelsError, ValidationError
from pymixed.data import ObservationTable
from pymixed.mixed import ModelSpecification, fit
from pymixed.selection import SelectionReport, select


def scored(label, aic, *, is_null=False, method='ml', rows=(0, 1, 2),
           response_key=('y', 'log', 'gaussian'), digest='d0', reml=False,
           converged=True):
    """Stand-in for a fitted model carrying only what select() reads."""
    spec = SimpleNamespace(coefficient_names=('(Intercept)',) if is_null else ('(Intercept)', label))
    return SimpleNamespace(
        label=label, aic=aic, aicc=aic, bic=aic, is_null=is_null, method=method,
        row_index=rows, response_key=response_key, response_digest=digest, reml=reml,
        n_obs=len(rows), converged=converged, spec=spec, idata=None,
    )


# ═══════════════════════════════════════════════════════════════════════
# Ranking and ties
# ═══════════════════════════════════════════════════════════════════════


class TestRanking:

    def test_clear_winner(self):
        report = select([scored('B', 110.0), scored('A', 105.0)])

        assert report.labels == ('A', 'B')
        assert report.best == 'A'
        assert report.sole_winner
        a, b = report.rows
        assert (a.rank, b.rank) == (1, 2)
        assert a.delta == 0.0
        assert b.delta == pytest.approx(5.0)
        assert not a.indistinguishable
        assert not b.indistinguishable
        assert not report.indistinguishable('A', 'B')

    def test_difference_under_two_is_a_tie(self):
        report = select([scored('A', 100.0), scored('B', 101.5)])

        assert report.best == 'A'
        assert not report.sole_winner
        assert report.tied_with_best == ('B',)
        assert all(r.indistinguishable for r in report.rows)
        assert report.indistinguishable('A', 'B')

    def test_difference_just_over_two(self):
        report = select([scored('A', 100.0), scored('B', 102.01)])
        assert report.sole_winner
        assert not report.row('B').indistinguishable

    def test_threshold_configurable(self):
        models = [scored('A', 100.0), scored('B', 103.0)]
        assert select(models).sole_winner
        assert not select(models, threshold=4.0).sole_winner

    def test_only_top_tie_flagged(self):
        report = select([
            scored('A', 100.0), scored('B', 110.0), scored('C', 111.0),
        ])
        assert not any(r.indistinguishable for r in report.rows)
        assert report.indistinguishable('B', 'C')

    def test_equal_scores_keep_input_order(self):
        report = select([scored('second', 50.0), scored('first', 50.0)])
        assert report.labels == ('second', 'first')

    def test_single_model(self):
        report = select([scored('only', 10.0)])
        assert report.best == 'only'
        assert report.sole_winner
        assert report.rows[0].delta_null is None

    def test_delta_null(self):
        report = select([
            scored('null', 120.0, is_null=True),
            scored('X', 100.0),
            scored('Z', 125.0),
        ])
        assert report.null_label == 'null'
        assert report.row('X').delta_null == pytest.approx(20.0)
        assert report.row('null').delta_null == 0.0
        assert report.row('Z').delta_null == pytest.approx(-5.0)

    def test_converged_flag_carried(self):
        report = select([scored('A', 1.0, converged=False), scored('B', 9.0)])
        assert report.row('A').converged is False


# ═══════════════════════════════════════════════════════════════════════
# Refused comparisons
# ═══════════════════════════════════════════════════════════════════════


class TestIncomparable:

    def test_empty(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([])
        assert info.value.reason == 'empty'

    def test_different_rows(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([scored('A', 1.0), scored('B', 2.0, rows=(0, 1))])
        assert info.value.reason == 'rows'
        assert info.value.labels == ('A', 'B')

    def test_same_labels_different_values(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([scored('A', 1.0), scored('B', 2.0, digest='d1')])
        assert info.value.reason == 'rows'

    def test_different_response(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([
                scored('A', 1.0),
                scored('B', 2.0, response_key=('y', 'identity', 'gaussian')),
            ])
        assert info.value.reason == 'response'

    def test_duplicate_labels(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([scored('A', 1.0), scored('A', 2.0)])
        assert info.value.reason == 'labels'

    def test_loo_needs_bayes_fits(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([scored('A', 1.0), scored('B', 2.0)], criterion='loo')
        assert info.value.reason == 'method'

    def test_information_criterion_needs_ml_fits(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([scored('A', 1.0), scored('B', None, method='bayes')])
        assert info.value.reason == 'method'
        assert info.value.labels == ('B',)

    def test_reml_mixed_with_ml(self):
        with pytest.raises(IncomparableModelsError):
            select([scored('A', 1.0), scored('B', 2.0, reml=True)])

    def test_reml_different_fixed_effects(self):
        with pytest.raises(IncomparableModelsError, match="REML"):
            select([scored('A', 1.0, reml=True), scored('B', 2.0, reml=True)])

    def test_non_finite_score(self):
        with pytest.raises(IncomparableModelsError) as info:
            select([scored('A', 1.0), scored('B', float('nan'))])
        assert info.value.reason == 'criterion'

    def test_unknown_criterion(self):
        with pytest.raises(ValidationError, match="criterion"):
            select([scored('A', 1.0)], criterion='dic')

    def test_negative_threshold(self):
        with pytest.raises(ValidationError, match="threshold"):
            select([scored('A', 1.0)], threshold=-1.0)


# ═══════════════════════════════════════════════════════════════════════
# Report output
# ═══════════════════════════════════════════════════════════════════════


class TestReportOutput:

    @pytest.fixture
    def report(self):
        return select([
            scored('null', 130.0, is_null=True),
            scored('X', 100.0),
            scored('Z', 101.0),
        ])

    def test_to_frame(self, report):
        frame = report.to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame['label']) == ['X', 'Z', 'null']
        assert list(frame['rank']) == [1, 2, 3]
        assert list(frame.columns) == [
            'label', 'score', 'se', 'rank', 'delta', 'delta_null',
            'converged', 'indistinguishable',
        ]

    def test_summary(self, report):
        text = report.summary()
        assert text.startswith("Model comparison by AIC")
        assert "Best: X (indistinguishable from: Z)" in text

    def test_row_lookup(self, report):
        with pytest.raises(KeyError):
            report.row('missing')

    def test_repr(self, report):
        assert repr(report) == (
            "SelectionReport(criterion='aic', n_models=3, best='X', sole_winner=False)"
        )

    def test_frozen(self, report):
        assert isinstance(report, SelectionReport)
        with pytest.raises(AttributeError):
            report.criterion = 'bic'


# ═══════════════════════════════════════════════════════════════════════
# End to end with fitted models
# ═══════════════════════════════════════════════════════════════════════


class TestFittedModels:

    def test_null_vs_quadratic(self, field_table, null_spec, quad_spec):
        models = [fit(null_spec, field_table, seed=5), fit(quad_spec, field_table, seed=5)]
        report = select(models)

        assert len(report.rows) == 2
        assert all(np.isfinite(r.score) for r in report.rows)
        assert report.best == quad_spec.label
        assert report.row(quad_spec.label).delta_null > 2.0

    def test_best_reproducible_across_runs(self, field_table, null_spec, quad_spec):
        best = set()
        for _ in range(3):
            models = [fit(s, field_table, seed=5) for s in (null_spec, quad_spec)]
            best.add(select(models).best)
        assert len(best) == 1

    @pytest.mark.parametrize("criterion", ['aic', 'aicc', 'bic'])
    def test_each_information_criterion(self, field_table, null_spec, quad_spec, criterion):
        models = [fit(null_spec, field_table), fit(quad_spec, field_table)]
        report = select(models, criterion=criterion)
        assert report.criterion == criterion
        assert report.rows[0].score == getattr(
            next(m for m in models if m.label == report.best), criterion
        )

    def test_different_rows_refused(self, field_frame, null_spec):
        full = ObservationTable.from_dataframe(field_frame, response='abundance', group='year')
        half = ObservationTable.from_dataframe(
            field_frame.iloc[:100], response='abundance', group='year'
        )
        other = ModelSpecification.null('abundance', 'year', label='null on half')
        with pytest.raises(IncomparableModelsError) as info:
            select([fit(null_spec, full), fit(other, half)])
        assert info.value.reason == 'rows'

    def test_same_index_different_data_refused(self, field_frame, null_spec):
        original = ObservationTable.from_dataframe(
            field_frame, response='abundance', group='year'
        )
        changed = field_frame.copy()
        changed['abundance'] = changed['abundance'].to_numpy()[::-1] * 3.0
        other = ObservationTable.from_dataframe(changed, response='abundance', group='year')
        assert other.row_index == original.row_index

        relabelled = ModelSpecification.null('abundance', 'year', label='null on changed')
        with pytest.raises(IncomparableModelsError) as info:
            select([fit(null_spec, original), fit(relabelled, other)])
        assert info.value.reason == 'rows'

    def test_different_specs_same_table_share_digest(self, field_table, null_spec, quad_spec):
        a, b = fit(null_spec, field_table), fit(quad_spec, field_table)
        assert a.response_digest == b.response_digest

    def test_different_transform_refused(self, field_table, null_spec):
        raw = ModelSpecification.null('abundance', 'year', transform='identity')
        with pytest.raises(IncomparableModelsError) as info:
            select([fit(null_spec, field_table), fit(raw, field_table)])
        assert info.value.reason == 'response'

    def test_reml_quadratic_vs_null_refused(self, field_table, null_spec, quad_spec):
        models = [fit(s, field_table, reml=True) for s in (null_spec, quad_spec)]
        with pytest.raises(IncomparableModelsError, match="REML"):
            select(models)

    @pytest.mark.slow
    def test_loo(self, field_table, null_spec, quad_spec):
        sampler = dict(draws=300, tune=300, chains=2, seed=4)
        models = [fit(s, field_table, method='bayes', **sampler) for s in (null_spec, quad_spec)]
        report = select(models, criterion='loo')

        assert report.higher_is_better
        assert report.best == quad_spec.label
        best = report.rows[0]
        assert best.se is not None and best.se > 0
        assert best.deviance == pytest.approx(-2.0 * best.score)
