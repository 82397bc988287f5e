"""Backend registry: maps names to estimator adapters.

Adding a backend means calling :func:`register_backend`; the fitter
looks backends up by name and never imports a statistics library itself.

Usage
-----
>>> from qrsweep.fitting.backends import get_backend
>>> backend = get_backend("statsmodels", vcov="iid")
>>> result = backend.fit_quantile(sample, tau=0.5)
"""

from __future__ import annotations

from qrsweep._exceptions import InvalidParameter
from qrsweep.fitting.backends.base import BaseBackend, FittedModelResult

__all__ = [
    "BaseBackend",
    "FittedModelResult",
    "get_backend",
    "register_backend",
    "list_backends",
    "resolve_backend",
]

_REGISTRY: dict[str, type[BaseBackend]] = {}


def register_backend(name: str, cls: type[BaseBackend]) -> None:
    """Register a backend class under *name*.

    Raises
    ------
    TypeError
        If *cls* is not a subclass of ``BaseBackend``.
    """
    if not (isinstance(cls, type) and issubclass(cls, BaseBackend)):
        raise TypeError(f"{cls!r} is not a BaseBackend subclass.")
    _REGISTRY[name] = cls


def get_backend(name: str, **kwargs) -> BaseBackend:
    """Return an **instance** of the backend registered under *name*.

    ``kwargs`` are forwarded to the backend constructor.

    Raises
    ------
    InvalidParameter
        If *name* is not in the registry.
    """
    try:
        cls = _REGISTRY[name]
    except KeyError:
        available = ", ".join(sorted(_REGISTRY)) or "(none)"
        raise InvalidParameter(
            f"Unknown backend {name!r}. Available backends: {available}",
            parameter="backend",
        ) from None
    return cls(**kwargs)


def list_backends() -> list[str]:
    """Return the names of all registered backends."""
    return sorted(_REGISTRY)


def resolve_backend(backend, options=None) -> BaseBackend:
    """Accept a backend instance or a registry name plus constructor options."""
    if isinstance(backend, BaseBackend):
        if options:
            raise InvalidParameter(
                "backend options cannot be combined with a backend instance",
                parameter="backend",
            )
        return backend
    if isinstance(backend, str):
        return get_backend(backend, **(options or {}))
    raise InvalidParameter(
        f"backend must be a name or a BaseBackend, got {type(backend).__name__}",
        parameter="backend",
    )


def _register_builtins() -> None:
    from qrsweep.fitting.backends.sm import StatsmodelsBackend

    register_backend("statsmodels", StatsmodelsBackend)


_register_builtins()
