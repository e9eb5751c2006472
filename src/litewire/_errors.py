from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from ._definition import Parameter


def _name(tp: object) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)


class ContainerError(RuntimeError):
    """Base class for every registration and build failure."""


class AmbiguousConstructorError(ContainerError):
    """One or more types do not have exactly one constructor signature."""

    def __init__(self, types: Sequence[object]) -> None:
        self.types = tuple(types)
        super().__init__(", ".join(_name(t) for t in self.types))


class AmbiguousValueNameError(ContainerError):
    def __init__(self, key: str, value: object) -> None:
        self.key = key
        self.value = value
        super().__init__(f"{key} with value {value!r}")


class UnmetDependenciesError(ContainerError):
    """No remaining definition could be built in the last generation.

    Covers both missing bindings and dependency cycles.
    """

    def __init__(self, missing: Mapping[type, Sequence[Parameter]]) -> None:
        self.missing = {identity: tuple(params) for identity, params in missing.items()}
        self.unresolved = tuple(self.missing)

        parts = []
        for identity, params in self.missing.items():
            unmet = ", ".join(p.describe() for p in params)
            parts.append(f"{_name(identity)} ({unmet})" if unmet else _name(identity))
        super().__init__(", ".join(parts))


class ObjectInstantiationError(ContainerError):
    def __init__(self, identity: type) -> None:
        self.identity = identity
        super().__init__(f"Failed to instantiate {_name(identity)}")


class AmbiguousCapabilityError(ContainerError):
    """Several definitions provide the same capability."""

    def __init__(self, conflicts: Mapping[type, Iterable[type]]) -> None:
        self.conflicts = {cap: tuple(providers) for cap, providers in conflicts.items()}
        super().__init__(
            "; ".join(
                f"{_name(cap)} provided by {', '.join(_name(p) for p in providers)}"
                for cap, providers in self.conflicts.items()
            )
        )


class BuildStateError(ContainerError):
    """The container was used out of its register -> build -> resolve order."""
