from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from ._definition import Definition, Parameter, constructor_signatures
from ._errors import (
    AmbiguousCapabilityError,
    AmbiguousConstructorError,
    AmbiguousValueNameError,
    BuildStateError,
    ObjectInstantiationError,
    UnmetDependenciesError,
)
from ._store import InstanceStore


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

T = TypeVar("T")

_UNSET = object()


class CapabilityConflict(Enum):
    """What to do when two definitions provide the same capability."""

    OVERRIDE = "override"  # last commit wins, logged as a warning
    ERROR = "error"  # rejected before anything is built


class _State(Enum):
    IDLE = "idle"
    BUILDING = "building"
    BUILT = "built"
    FAILED = "failed"


class Container:
    """Build-once DI container.

    - register types (constructor introspection) or explicit factories
    - register named values for parameters marked with `Inject`
    - `build()` constructs every definition in dependency generations.
    """

    def __init__(self, *, capability_conflict: CapabilityConflict = CapabilityConflict.OVERRIDE) -> None:
        self._definitions: dict[type, Definition] = {}
        self._values: dict[str, object] = {}
        self._capability_conflict = capability_conflict
        self._state = _State.IDLE
        self._store: InstanceStore | None = None
        self._lock = threading.RLock()

    @property
    def definitions(self) -> tuple[Definition, ...]:
        return tuple(self._definitions.values())

    def register_definitions(self, *types: type) -> None:
        """Register types built through their single constructor.

        Example:
          container.register_definitions(SmsClient, RepositoryStubImpl, Service)

        Either every type is admitted or none is.
        """
        with self._lock:
            self._ensure_idle()

            bad = [tp for tp in types if constructor_signatures(tp) != 1]
            if bad:
                raise AmbiguousConstructorError(bad)

            definitions = [Definition.of(tp) for tp in types]
            for definition in definitions:
                self._check_redefinition(definition)
            for definition in definitions:
                self._add_definition(definition)

    def register_factory(
        self,
        identity: type,
        factory: Callable[..., object],
        *,
        requires: Iterable[Any] = (),
        capabilities: Iterable[type] | None = None,
    ) -> None:
        """Register an explicit factory for `identity`.

        `requires` lists the factory's positional arguments in order: a type,
        `Annotated[type, Inject(key)]` or a bare `Inject(key)`.

        Example:
          container.register_factory(Repository, make_repo, requires=[Annotated[str, Inject("dsn")]])

        """
        definition = Definition.from_factory(identity, factory, requires, capabilities)
        with self._lock:
            self._ensure_idle()
            self._add_definition(definition)

    def register_value(self, key: str, value: object) -> None:
        if not isinstance(key, str):
            msg = f"Value keys must be strings, got {type(key).__name__}"
            raise TypeError(msg)

        with self._lock:
            self._ensure_idle()
            if key in self._values:
                raise AmbiguousValueNameError(key, value)
            self._values[key] = value
        logger.debug("Registered value %r", key)

    def build(self) -> InstanceStore:
        """Construct one instance per registered definition.

        Raises `UnmetDependenciesError` when some definitions can never be
        satisfied (missing bindings or cycles) and `ObjectInstantiationError`
        when a constructor fails. Any failure discards the whole build.
        """
        with self._lock:
            if self._state is not _State.IDLE:
                msg = f"build() can only run once (container is {self._state.value})"
                raise BuildStateError(msg)
            self._state = _State.BUILDING

            try:
                store = self._wire()
            except Exception:
                self._state = _State.FAILED
                raise

            self._store = store
            self._state = _State.BUILT
            return store

    def resolve(self, token: type[T]) -> T:
        """Return the instance built for `token` (a concrete type or capability)."""
        if self._store is None:
            msg = f"Cannot resolve {token!r}: container is {self._state.value}, not built"
            raise BuildStateError(msg)
        return self._store.resolve(token)

    def _wire(self) -> InstanceStore:
        remaining = dict(self._definitions)
        # A registered type is only ever bound to its own instance.
        reserved = frozenset(remaining)
        store = InstanceStore()

        if self._capability_conflict is CapabilityConflict.ERROR:
            self._check_capability_conflicts(reserved)

        while remaining:
            generation = [d for d in remaining.values() if self._is_satisfiable(d, store)]
            if not generation:
                missing = {
                    d.identity: [p for p in d.parameters if not self._is_param_satisfiable(p, store)]
                    for d in remaining.values()
                }
                raise UnmetDependenciesError(missing)

            logger.debug(
                "Building generation %d: %s",
                len(store.generations) + 1,
                ", ".join(d.identity.__qualname__ for d in generation),
            )
            built = [(d, self._instantiate(d, store)) for d in generation]
            self._commit(store, built, reserved)

            for definition in generation:
                del remaining[definition.identity]

        logger.info("Built %d definitions in %d generations", len(self._definitions), len(store.generations))
        return store

    def _is_satisfiable(self, definition: Definition, store: InstanceStore) -> bool:
        return all(self._is_param_satisfiable(p, store) for p in definition.parameters)

    def _is_param_satisfiable(self, param: Parameter, store: InstanceStore) -> bool:
        if param.type is not None and param.type in store:
            return True
        return param.key is not None and param.key in self._values

    def resolve_param(self, definition: Definition, param: Parameter, store: InstanceStore) -> object:
        """Resolving param.

        Resolution precedence:
        1. built instance by type/capability
        2. named value by key
        3. error.
        """
        if param.type is not None:
            value = store.get(param.type, _UNSET)
            if value is not _UNSET:
                return value

        if param.key is not None and param.key in self._values:
            return self._values[param.key]

        raise UnmetDependenciesError({definition.identity: [param]})

    def _instantiate(self, definition: Definition, store: InstanceStore) -> object:
        args: list[object] = []
        kwargs: dict[str, object] = {}
        for param in definition.parameters:
            value = self.resolve_param(definition, param, store)
            if param.keyword_only:
                kwargs[param.name] = value
            else:
                args.append(value)

        try:
            return definition.factory(*args, **kwargs)
        except Exception as e:
            raise ObjectInstantiationError(definition.identity) from e

    def _commit(self, store: InstanceStore, built: list[tuple[Definition, object]], reserved: frozenset[type]) -> None:
        store.add_generation([d.identity for d, _ in built])

        for definition, instance in built:
            store.add_instance(definition.identity, instance)

        for definition, instance in built:
            for capability in definition.capabilities or ():
                if capability in reserved:
                    logger.debug(
                        "Not binding %s to %s: it is a registered definition",
                        capability.__qualname__,
                        definition.identity.__qualname__,
                    )
                    continue

                previous = store.bind_capability(capability, instance)
                if previous is not None and previous is not instance:
                    logger.warning(
                        "Capability %s rebound from %s to %s",
                        capability.__qualname__,
                        type(previous).__qualname__,
                        definition.identity.__qualname__,
                    )

    def _check_capability_conflicts(self, reserved: frozenset[type]) -> None:
        providers: dict[type, list[type]] = {}
        for definition in self._definitions.values():
            for capability in definition.capabilities or ():
                if capability not in reserved:
                    providers.setdefault(capability, []).append(definition.identity)

        conflicts = {cap: ids for cap, ids in providers.items() if len(ids) > 1}
        if conflicts:
            raise AmbiguousCapabilityError(conflicts)

    def _check_redefinition(self, definition: Definition) -> None:
        existing = self._definitions.get(definition.identity)
        if existing is not None and existing != definition:
            msg = f"{definition.identity.__qualname__} is already registered with a different definition"
            raise ValueError(msg)

    def _add_definition(self, definition: Definition) -> None:
        self._check_redefinition(definition)
        if definition.identity in self._definitions:
            return

        self._definitions[definition.identity] = definition
        logger.debug("Registered definition %s", definition.identity.__qualname__)

    def _ensure_idle(self) -> None:
        if self._state is not _State.IDLE:
            msg = f"Cannot register after build() has started (container is {self._state.value})"
            raise BuildStateError(msg)
