"""Build-once dependency injection container.

This package wires a set of classes together in a single startup pass: each
registered type is constructed exactly once, receiving constructor arguments
from instances built earlier (matched by type or by an implemented base class)
or from named values.

Exports:
- `Container`: registry of definitions and named values; `build()` constructs
  everything in dependency generations.
- `Inject`: marker for parameters fed from a named value,
  e.g. `url: Annotated[str, Inject("smsUrl")]`.
- `InstanceStore`: the result of a build, indexed by type and capability.
- `CapabilityConflict`: policy when two definitions share a capability.
- The `ContainerError` hierarchy raised by registration and build.
"""

from ._container import CapabilityConflict, Container
from ._definition import Definition, Inject, Parameter
from ._errors import (
    AmbiguousCapabilityError,
    AmbiguousConstructorError,
    AmbiguousValueNameError,
    BuildStateError,
    ContainerError,
    ObjectInstantiationError,
    UnmetDependenciesError,
)
from ._store import InstanceStore


__all__ = [
    "AmbiguousCapabilityError",
    "AmbiguousConstructorError",
    "AmbiguousValueNameError",
    "BuildStateError",
    "CapabilityConflict",
    "Container",
    "ContainerError",
    "Definition",
    "Inject",
    "InstanceStore",
    "ObjectInstantiationError",
    "Parameter",
    "UnmetDependenciesError",
]
