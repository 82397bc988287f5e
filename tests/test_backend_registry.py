"""Tests for the backend registry."""

import pytest

from qrsweep._exceptions import InvalidParameter
from qrsweep.fitting.backends import (
    BaseBackend,
    get_backend,
    list_backends,
    register_backend,
    resolve_backend,
)
from qrsweep.fitting.backends.sm import StatsmodelsBackend


class _DummyBackend(BaseBackend):
    name = "_dummy"

    def _fit_ols_impl(self, sample):
        raise NotImplementedError

    def _fit_quantile_impl(self, sample, tau):
        raise NotImplementedError


class TestRegistry:

    def test_list_backends_not_empty(self):
        assert len(list_backends()) > 0

    def test_builtin_statsmodels_registered(self):
        assert "statsmodels" in list_backends()

    def test_get_backend_returns_instance(self):
        assert isinstance(get_backend("statsmodels"), StatsmodelsBackend)

    def test_get_backend_forwards_options(self):
        backend = get_backend("statsmodels", vcov="iid", max_iter=50)
        assert backend.vcov == "iid"
        assert backend.max_iter == 50

    def test_get_unknown_raises(self):
        with pytest.raises(InvalidParameter, match="Unknown backend"):
            get_backend("nonexistent_backend_xyz")

    def test_register_custom_backend(self):
        register_backend("_test_dummy", _DummyBackend)
        assert "_test_dummy" in list_backends()
        assert isinstance(get_backend("_test_dummy"), _DummyBackend)

    def test_register_non_backend_raises(self):
        with pytest.raises(TypeError, match="not a BaseBackend"):
            register_backend("bad", str)


class TestResolveBackend:

    def test_instance_passes_through(self):
        backend = StatsmodelsBackend()
        assert resolve_backend(backend) is backend

    def test_name_with_options(self):
        backend = resolve_backend("statsmodels", {"kernel": "gau"})
        assert backend.kernel == "gau"

    def test_instance_with_options_rejected(self):
        with pytest.raises(InvalidParameter):
            resolve_backend(StatsmodelsBackend(), {"kernel": "gau"})

    def test_wrong_type_rejected(self):
        with pytest.raises(InvalidParameter):
            resolve_backend(42)
