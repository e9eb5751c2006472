from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeVar, cast


if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

T = TypeVar("T")


class InstanceStore(Mapping[Any, object]):
    """Built instances, indexed by concrete type and by capability.

    Filled one generation at a time while the container builds; read-only for
    everyone else.
    """

    def __init__(self) -> None:
        self._bindings: dict[Any, object] = {}
        self._instances: dict[type, object] = {}
        self._generations: list[tuple[type, ...]] = []

    def __getitem__(self, token: Any) -> object:
        return self._bindings[token]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        names = ", ".join(t.__qualname__ for t in self._instances)
        return f"{type(self).__name__}({names})"

    def resolve(self, token: type[T]) -> T:
        try:
            return cast("T", self._bindings[token])
        except KeyError:
            msg = f"No instance built for token: {token!r}"
            raise KeyError(msg) from None

    def instances(self) -> dict[type, object]:
        """One instance per built definition, keyed by its identity."""
        return dict(self._instances)

    @property
    def generations(self) -> tuple[tuple[type, ...], ...]:
        return tuple(self._generations)

    def generation_of(self, identity: type) -> int:
        """1-based generation in which `identity` was built."""
        for number, members in enumerate(self._generations, start=1):
            if identity in members:
                return number
        msg = f"{identity!r} was not built"
        raise KeyError(msg)

    # Build-time mutation. Only the container calls these.

    def add_generation(self, identities: Sequence[type]) -> None:
        self._generations.append(tuple(identities))

    def add_instance(self, identity: type, instance: object) -> None:
        self._instances[identity] = instance
        self._bindings[identity] = instance

    def bind_capability(self, capability: type, instance: object) -> object | None:
        """Bind `capability` to `instance`, returning the instance it replaced."""
        previous = self._bindings.get(capability)
        self._bindings[capability] = instance
        return previous
