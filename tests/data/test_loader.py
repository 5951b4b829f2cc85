"""
Tests for load_table() and ObservationTable.

Validates:
    - log/back transform round-trip
    - offending rows are named, never silently dropped
    - delimiter handling for csv, tsv and open handles
"""

import io

import numpy as np
import pandas as pd
import pytest

from pymixed.core.exceptions import DataValidationError, ValidationError
from pymixed.data import (
    ObservationTable, back_transform, load_table, log_transform, transformed_name,
)


# ═══════════════════════════════════════════════════════════════════════
# Transforms
# ═══════════════════════════════════════════════════════════════════════


class TestTransforms:

    def test_round_trip(self, rng):
        values = np.exp(rng.uniform(-20.0, 20.0, size=500))
        np.testing.assert_allclose(back_transform(log_transform(values)), values, rtol=1e-12)

    def test_identity_back_transform(self):
        np.testing.assert_array_equal(back_transform([1.0, -2.0], 'identity'), [1.0, -2.0])

    def test_unknown_transform(self):
        with pytest.raises(ValidationError, match="sqrt"):
            back_transform([1.0], 'sqrt')

    def test_transformed_name(self):
        assert transformed_name('abundance', 'log') == 'log_abundance'
        assert transformed_name('abundance', 'identity') == 'abundance'


# ═══════════════════════════════════════════════════════════════════════
# ObservationTable
# ═══════════════════════════════════════════════════════════════════════


class TestObservationTable:

    def test_derived_log_column(self, field_frame, field_table):
        np.testing.assert_allclose(
            field_table.frame['log_abundance'], np.log(field_frame['abundance'])
        )
        np.testing.assert_allclose(
            field_table.response_values(), np.log(field_frame['abundance'])
        )

    def test_source_not_modified(self, field_frame):
        ObservationTable.from_dataframe(field_frame, response='abundance', group='year')
        assert 'log_abundance' not in field_frame.columns

    def test_accessors(self, field_table):
        assert len(field_table) == 200
        assert field_table.n_obs == 200
        assert field_table.row_index == tuple(range(200))
        assert field_table.group_labels.nunique() == 4
        assert field_table.has_column('X2')
        assert field_table.metadata['source'] == 'dataframe'
        assert "4 levels" in repr(field_table)

    def test_frame_is_a_copy(self, field_table):
        frame = field_table.frame
        frame['abundance'] = -1.0
        assert (field_table.frame['abundance'] > 0).all()

    def test_with_frame_subset(self, field_table):
        subset = field_table.with_frame(field_table.frame.iloc[:60])
        assert subset.n_obs == 60
        assert subset.row_index == tuple(range(60))
        assert subset.transform == 'log'
        np.testing.assert_allclose(
            subset.response_values(), field_table.response_values()[:60]
        )

    def test_with_frame_revalidates(self, field_table):
        frame = field_table.frame
        frame.loc[4, 'abundance'] = 0.0
        with pytest.raises(DataValidationError) as info:
            field_table.with_frame(frame)
        assert info.value.rows == (4,)

    def test_non_positive_rows_named(self):
        df = pd.DataFrame({'y': [1.0, 0.0, 2.0, -3.0], 'g': ['a', 'a', 'b', 'b']})
        with pytest.raises(DataValidationError) as info:
            ObservationTable.from_dataframe(df, response='y', group='g')
        assert info.value.column == 'y'
        assert info.value.rows == (1, 3)

    def test_non_positive_allowed_under_identity(self):
        df = pd.DataFrame({'y': [1.0, 0.0, -2.0], 'g': ['a', 'a', 'b']})
        table = ObservationTable.from_dataframe(df, response='y', group='g', transform='identity')
        assert 'log_y' not in table.columns
        with pytest.raises(DataValidationError):
            table.response_values('log')

    def test_missing_response(self):
        df = pd.DataFrame({'y': [1.0, np.nan], 'g': ['a', 'b']})
        with pytest.raises(DataValidationError) as info:
            ObservationTable.from_dataframe(df, response='y', group='g')
        assert info.value.rows == (1,)

    def test_missing_group_label(self):
        df = pd.DataFrame({'y': [1.0, 2.0, 3.0], 'g': ['a', None, 'b']})
        with pytest.raises(DataValidationError) as info:
            ObservationTable.from_dataframe(df, response='y', group='g')
        assert info.value.column == 'g'
        assert info.value.rows == (1,)

    def test_absent_column(self):
        df = pd.DataFrame({'y': [1.0], 'g': ['a']})
        with pytest.raises(ValidationError, match="year"):
            ObservationTable.from_dataframe(df, response='y', group='year')

    def test_bad_covariate(self):
        df = pd.DataFrame({'y': [1.0, 2.0], 'g': ['a', 'b'], 'X': [0.5, np.inf]})
        with pytest.raises(DataValidationError) as info:
            ObservationTable.from_dataframe(df, response='y', group='g', covariates=['X'])
        assert info.value.column == 'X'

    def test_unknown_transform(self):
        df = pd.DataFrame({'y': [1.0], 'g': ['a']})
        with pytest.raises(ValidationError, match="transform"):
            ObservationTable.from_dataframe(df, response='y', group='g', transform='logit')

    def test_existing_log_column_refused(self):
        df = pd.DataFrame({'y': [1.0, 2.0], 'g': ['a', 'b'], 'log_y': [9.0, 9.0]})
        with pytest.raises(ValidationError, match="log_y"):
            ObservationTable.from_dataframe(df, response='y', group='g')

    def test_existing_log_column_ignored_under_identity(self):
        df = pd.DataFrame({'y': [1.0, 2.0], 'g': ['a', 'b'], 'log_y': [9.0, 9.0]})
        table = ObservationTable.from_dataframe(df, response='y', group='g', transform='identity')
        np.testing.assert_allclose(table.response_values('log'), np.log([1.0, 2.0]))


# ═══════════════════════════════════════════════════════════════════════
# load_table
# ═══════════════════════════════════════════════════════════════════════


class TestLoadTable:

    def test_csv(self, tmp_path, field_frame):
        path = tmp_path / "field.csv"
        field_frame.to_csv(path, index=False)
        table = load_table(path, response='abundance', group='year', covariates=['X', 'X2'])
        assert table.n_obs == 200
        assert table.metadata['source_path'] == str(path)
        np.testing.assert_allclose(
            table.response_values(), np.log(field_frame['abundance']), rtol=1e-10
        )

    def test_tsv(self, tmp_path, field_frame):
        path = tmp_path / "field.tsv"
        field_frame.to_csv(path, sep='\t', index=False)
        table = load_table(str(path), response='abundance', group='year')
        assert set(['year', 'X', 'X2', 'abundance']) <= set(table.columns)

    def test_txt_delimiter_sniffed(self, tmp_path):
        path = tmp_path / "field.txt"
        path.write_text("year;y\n2001;15\n2001;25\n2002;30\n")
        table = load_table(path, response='y', group='year')
        assert table.n_obs == 3

    def test_text_handle(self):
        handle = io.StringIO("year,y\n2001,1.5\n2002,2.5\n")
        table = load_table(handle, response='y', group='year', sep=',')
        assert table.metadata['source'] == 'dataframe'
        np.testing.assert_allclose(table.response_values(), np.log([1.5, 2.5]))

    def test_non_positive_reported_by_row(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("year,y\n2001,1.5\n2001,0\n2002,3.0\n")
        with pytest.raises(DataValidationError) as info:
            load_table(path, response='y', group='year')
        assert info.value.rows == (1,)

    def test_unknown_suffix(self, tmp_path):
        with pytest.raises(ValidationError, match="xlsx"):
            load_table(tmp_path / "field.xlsx", response='y', group='year')

    def test_bad_source_type(self):
        with pytest.raises(ValidationError, match="source"):
            load_table(42, response='y', group='year')
