from __future__ import annotations

import abc
import inspect
import logging
import typing
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Generic,
    Protocol,
    get_args,
    get_origin,
    get_overloads,
    get_type_hints,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


# Bases every class may carry in its MRO without declaring a capability.
_NON_CAPABILITIES: frozenset[type] = frozenset({object, abc.ABC, typing.cast("type", Protocol), Generic})


@dataclass(frozen=True)
class Inject:
    """Marks a constructor parameter as satisfiable by a named value.

    Example:
      class SmsClient:
          def __init__(self, url: Annotated[str, Inject("smsUrl")]) -> None: ...

    """

    key: str


@dataclass(frozen=True)
class Parameter:
    name: str
    type: Any | None
    key: str | None = None
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def keyword_only(self) -> bool:
        return self.kind is inspect.Parameter.KEYWORD_ONLY

    def describe(self) -> str:
        ann = "no-annotation" if self.type is None else getattr(self.type, "__qualname__", repr(self.type))
        text = f"{self.name}: {ann}"
        if self.key is not None:
            text += f" @ {self.key!r}"
        return text


@dataclass(frozen=True)
class Definition:
    """A buildable type: its identity, the factory producing it and the
    ordered parameters that factory takes.

    `capabilities` are the abstract types the built instance is also indexed
    under. When left as None they are discovered from the identity's MRO.
    """

    identity: type
    factory: Callable[..., object]
    parameters: tuple[Parameter, ...] = ()
    capabilities: tuple[type, ...] | None = field(default=None)

    def __post_init__(self) -> None:
        if self.capabilities is None:
            object.__setattr__(self, "capabilities", discover_capabilities(self.identity))

    @classmethod
    def of(cls, tp: type) -> Definition:
        """Introspect the single constructor of `tp`.

        Callers are expected to have checked `constructor_signatures(tp) == 1`.
        """
        sig = inspect.signature(tp)
        hints = _get_init_type_hints(tp)

        params = []
        for name, p in sig.parameters.items():
            # Variadic slots cannot be wired; they stay empty.
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue
            ann = hints.get(name, p.annotation)
            params.append(parameter_from_annotation(name, ann, kind=p.kind))

        return cls(identity=tp, factory=tp, parameters=tuple(params))

    @classmethod
    def from_factory(
        cls,
        identity: type,
        factory: Callable[..., object],
        requires: Iterable[Any] = (),
        capabilities: Iterable[type] | None = None,
    ) -> Definition:
        params = tuple(parameter_from_annotation(f"arg{i}", req) for i, req in enumerate(requires))
        return cls(
            identity=identity,
            factory=factory,
            parameters=params,
            capabilities=None if capabilities is None else tuple(capabilities),
        )


def parameter_from_annotation(
    name: str,
    ann: Any,
    *,
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD,
) -> Parameter:
    """Split an annotation into the required type and an optional value key.

    Accepts a plain type, `Annotated[type, Inject(key)]` or a bare `Inject(key)`.
    """
    if isinstance(ann, Inject):
        return Parameter(name=name, type=None, key=ann.key, kind=kind)

    key = None
    if get_origin(ann) is Annotated:
        ann, *extras = get_args(ann)
        key = next((e.key for e in extras if isinstance(e, Inject)), None)

    # Unannotated, or a forward reference that could not be evaluated
    if ann is inspect.Parameter.empty or isinstance(ann, str):
        ann = None

    # Only hashable annotations can be looked up among built instances.
    try:
        hash(ann)
    except TypeError:
        ann = None

    return Parameter(name=name, type=ann, key=key, kind=kind)


def constructor_signatures(tp: object) -> int:
    """Count the constructor signatures `tp` declares.

    Non-classes, abstract classes and protocols have none. An `__init__` with
    `typing.overload` variants has one per variant.
    """
    if not inspect.isclass(tp):
        return 0

    if inspect.isabstract(tp) or _is_protocol(tp):
        return 0

    init = inspect.getattr_static(tp, "__init__", None)
    if inspect.isfunction(init):
        overloads = get_overloads(init)
        if len(overloads) > 1:
            return len(overloads)

    try:
        inspect.signature(tp)
    except (TypeError, ValueError):
        return 0

    return 1


def discover_capabilities(tp: type) -> tuple[type, ...]:
    mro = getattr(tp, "__mro__", ())
    return tuple(base for base in mro[1:] if base not in _NON_CAPABILITIES)


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: type) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def _is_protocol(tp: type) -> bool:
        """Detect whether 'tp' is itself a Protocol, not a class implementing one."""
        return inspect.isclass(tp) and tp is not Protocol and bool(getattr(tp, "_is_protocol", False))


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init, include_extras=True)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = _get_hints_one_by_one(cls, init)

    return hints


def _get_hints_one_by_one(cls: type, init: Any) -> dict[str, Any]:
    """Evaluate each annotation of `init` separately, keeping those that resolve."""
    hints: dict[str, Any] = {}
    globalns = getattr(init, "__globals__", {})
    try:
        annotations = dict(getattr(init, "__annotations__", {}))
    except NameError:
        # Lazily evaluated annotations fail as a whole
        return hints

    for name, ann in annotations.items():
        try:
            # Same evaluation get_type_hints performs for string annotations
            hints[name] = eval(ann, globalns) if isinstance(ann, str) else ann  # noqa: S307
        except NameError as exc:
            logger.warning("'%s' name error retrieving %s.%s type hint", exc.name, cls.__qualname__, name)
        except (SyntaxError, TypeError):
            continue

    return hints
