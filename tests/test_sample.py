"""Tests for ModelSpec, quantile validation and the shared sample."""

import numpy as np
import pandas as pd
import pytest

from qrsweep._exceptions import InvalidParameter
from qrsweep.fitting import INTERCEPT, ModelSpec, prepare_sample, validate_quantiles
from qrsweep.fitting._sample import Sample, coerce_sample


class TestModelSpec:

    def test_terms_with_intercept(self):
        spec = ModelSpec("y", ["a", "b"])
        assert spec.independents == ("a", "b")
        assert spec.terms == (INTERCEPT, "a", "b")
        assert spec.variables == ("y", "a", "b")

    def test_terms_without_intercept(self):
        spec = ModelSpec("y", ["a"], intercept=False)
        assert spec.terms == ("a",)

    def test_formula(self):
        assert ModelSpec("y", ["a", "b"]).formula == "y ~ a + b"
        assert str(ModelSpec("y", ["a"], intercept=False)) == "y ~ a - 1"

    def test_hashable_and_equal(self):
        assert ModelSpec("y", ["a"]) == ModelSpec("y", ("a",))
        assert hash(ModelSpec("y", ["a"])) == hash(ModelSpec("y", ("a",)))

    def test_duplicate_independent(self):
        with pytest.raises(InvalidParameter, match="twice"):
            ModelSpec("y", ["a", "a"])

    def test_dependent_among_independents(self):
        with pytest.raises(InvalidParameter):
            ModelSpec("y", ["a", "y"])

    def test_empty_dependent(self):
        with pytest.raises(InvalidParameter):
            ModelSpec("", ["a"])

    def test_no_terms(self):
        with pytest.raises(InvalidParameter, match="no terms"):
            ModelSpec("y", [], intercept=False)

    def test_reserved_intercept_name(self):
        with pytest.raises(InvalidParameter):
            ModelSpec("y", [INTERCEPT])


class TestValidateQuantiles:

    def test_valid_sweep(self):
        assert validate_quantiles([0.1, 0.25, 0.5]) == (0.1, 0.25, 0.5)

    def test_order_preserved(self):
        assert validate_quantiles([0.9, 0.1, 0.5]) == (0.9, 0.1, 0.5)

    def test_numpy_input(self):
        assert validate_quantiles(np.array([0.25, 0.75])) == (0.25, 0.75)

    def test_empty_is_valid(self):
        assert validate_quantiles([]) == ()

    @pytest.mark.parametrize("bad", [0.0, 1.0, -0.1, 1.5, float("nan"), float("inf")])
    def test_out_of_range(self, bad):
        with pytest.raises(InvalidParameter) as info:
            validate_quantiles([0.5, bad])
        assert info.value.parameter == "quantiles"
        assert info.value.code == "INVALID_PARAMETER"

    def test_boundaries_are_value_errors(self):
        # InvalidParameter doubles as ValueError for generic callers
        with pytest.raises(ValueError):
            validate_quantiles([0])
        with pytest.raises(ValueError):
            validate_quantiles([1])

    def test_scalar_rejected(self):
        with pytest.raises(InvalidParameter, match="sequence"):
            validate_quantiles(0.5)

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidParameter):
            validate_quantiles([0.5, "0.9"])

    def test_bool_rejected(self):
        with pytest.raises(InvalidParameter):
            validate_quantiles([True])

    def test_duplicates_rejected(self):
        with pytest.raises(InvalidParameter, match="more than once"):
            validate_quantiles([0.5, 0.25, 0.5])


class TestPrepareSample:

    @pytest.fixture
    def frame(self):
        return pd.DataFrame({
            "y": [1.0, 2.0, np.nan, 4.0, 5.0, 6.0],
            "a": [1.0, np.nan, 3.0, 4.0, 5.0, 6.0],
            "b": [0.0, 1.0, 0.0, 1.0, 0.0, 1.0],
            "unused": [np.nan] * 6,
        })

    def test_drops_rows_missing_any_referenced_variable(self, frame):
        sample = prepare_sample(frame, ModelSpec("y", ["a", "b"]))
        assert sample.nobs == 4
        assert sample.n_dropped == 2
        np.testing.assert_array_equal(sample.y, [1.0, 4.0, 5.0, 6.0])

    def test_ignores_unreferenced_columns(self, frame):
        sample = prepare_sample(frame, ModelSpec("y", ["b"]))
        # only y is missing once; 'unused' is all-NaN but not referenced
        assert sample.nobs == 5

    def test_zero_is_not_missing(self):
        frame = pd.DataFrame({"y": [0.0, 0.0, 1.0], "a": [0.0, 1.0, 0.0]})
        assert prepare_sample(frame, ModelSpec("y", ["a"])).nobs == 3

    def test_design_matrix(self, frame):
        sample = prepare_sample(frame, ModelSpec("y", ["a", "b"]))
        assert sample.terms == (INTERCEPT, "a", "b")
        assert (sample.X[INTERCEPT] == 1.0).all()
        assert sample.X.dtypes.unique().tolist() == [np.float64]

    def test_input_not_modified(self, frame):
        before = frame.copy()
        prepare_sample(frame, ModelSpec("y", ["a", "b"]))
        pd.testing.assert_frame_equal(frame, before)

    def test_unknown_variable(self, frame):
        with pytest.raises(InvalidParameter, match="no column"):
            prepare_sample(frame, ModelSpec("y", ["a", "zzz"]))

    def test_non_numeric_column(self):
        frame = pd.DataFrame({"y": [1.0, 2.0], "a": ["x", "y"]})
        with pytest.raises(InvalidParameter, match="non-numeric"):
            prepare_sample(frame, ModelSpec("y", ["a"]))

    def test_not_a_frame(self):
        with pytest.raises(InvalidParameter):
            prepare_sample({"y": [1.0]}, ModelSpec("y", ["a"]))

    def test_meps_effective_size(self, meps_sample):
        assert meps_sample.nobs == 2955
        assert meps_sample.n_dropped == 109


class TestCoerceSample:

    def test_passes_through_matching_sample(self, meps_sample, spec):
        assert coerce_sample(meps_sample, spec) is meps_sample

    def test_rejects_sample_for_other_spec(self, meps_sample):
        with pytest.raises(InvalidParameter, match="prepared for"):
            coerce_sample(meps_sample, ModelSpec("ltotexp", ["age"]))

    def test_prepares_frame(self, meps_frame, spec):
        sample = coerce_sample(meps_frame, spec)
        assert isinstance(sample, Sample)
        assert sample.nobs == 2955
