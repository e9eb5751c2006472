from abc import ABC, abstractmethod
from typing import Annotated

import pytest

from litewire import Container, Inject, ObjectInstantiationError


class Repository(ABC):
    @abstractmethod
    def dsn(self) -> str: ...


class SqlRepository(Repository):
    def __init__(self, dsn: str, clock: "Clock"):
        self._dsn = dsn
        self.clock = clock

    def dsn(self) -> str:
        return self._dsn


class Clock: ...


class Service:
    def __init__(self, repository: Repository):
        self.repository = repository


def test_factory_receives_requirements_in_order():
    c = Container()
    c.register_value("dsn", "sqlite://")
    c.register_factory(
        SqlRepository,
        lambda dsn, clock: SqlRepository(dsn, clock),
        requires=[Inject("dsn"), Clock],
    )
    c.register_definitions(Clock, Service)

    store = c.build()

    repo = store.resolve(SqlRepository)
    assert repo.dsn() == "sqlite://"
    assert repo.clock is store[Clock]
    assert store.resolve(Service).repository is repo
    assert store.generations == ((Clock,), (SqlRepository,), (Service,))


def test_factory_for_abstract_identity():
    c = Container()
    c.register_value("dsn", "postgres://")
    c.register_factory(
        Repository,
        lambda dsn: SqlRepository(dsn, Clock()),
        requires=[Annotated[str, Inject("dsn")]],
    )
    c.register_definitions(Service)

    store = c.build()
    assert store.resolve(Service).repository.dsn() == "postgres://"


def test_factory_explicit_capabilities_replace_discovered_ones():
    class Audit: ...

    c = Container()
    c.register_factory(Clock, Clock, capabilities=[Audit])

    store = c.build()
    assert store[Audit] is store[Clock]


def test_factory_failure_is_wrapped():
    def broken():
        msg = "no connection"
        raise ConnectionError(msg)

    c = Container()
    c.register_factory(Clock, broken)

    with pytest.raises(ObjectInstantiationError) as ctx:
        c.build()
    assert isinstance(ctx.value.__cause__, ConnectionError)


def test_factory_redefinition_raises():
    c = Container()
    c.register_factory(Clock, Clock)
    c.register_factory(Clock, Clock)  # same definition is tolerated

    with pytest.raises(ValueError):
        c.register_factory(Clock, lambda: Clock())


def test_registering_type_over_factory_redefinition_admits_nothing():
    class Other: ...

    c = Container()
    c.register_factory(Clock, lambda: Clock())

    with pytest.raises(ValueError):
        c.register_definitions(Other, Clock)
    assert [d.identity for d in c.definitions] == [Clock]
