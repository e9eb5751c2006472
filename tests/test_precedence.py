import unittest
from typing import Annotated

from litewire import Container, Inject


class TestResolutionPrecedence(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_build_uses_type_when_keyed_value_also_exists(self):
        class DB: ...

        class Repo:
            def __init__(self, db: Annotated[DB, Inject("db")]):
                self.db = db

        self.cont.register_value("db", "not-a-db")
        self.cont.register_definitions(Repo, DB)
        store = self.cont.build()

        # Type match wins over the named value
        assert store.resolve(Repo).db is store[DB]

    def test_build_falls_back_to_key_when_type_not_built(self):
        class DB: ...

        class Repo:
            def __init__(self, db: Annotated[DB, Inject("db")]):
                self.db = db

        fallback = DB()
        self.cont.register_value("db", fallback)
        self.cont.register_definitions(Repo)
        store = self.cont.build()

        assert store.resolve(Repo).db is fallback
        assert store.generation_of(Repo) == 1

    def test_keyed_parameter_is_ready_in_first_generation(self):
        class Cache: ...

        class Api:
            def __init__(self, cache: Annotated[Cache, Inject("cache")]):
                self.cache = cache

        class Slow:
            def __init__(self, api: Api):
                self.api = api

        self.cont.register_value("cache", Cache())
        self.cont.register_definitions(Slow, Api)
        store = self.cont.build()

        assert store.generations == ((Api,), (Slow,))

    def test_same_type_parameters_are_told_apart_by_key(self):
        class Gateway:
            def __init__(
                self,
                sms_url: Annotated[str, Inject("smsUrl")],
                push_url: Annotated[str, Inject("pushUrl")],
            ):
                self.sms_url = sms_url
                self.push_url = push_url

        self.cont.register_value("smsUrl", "https://sms.io")
        self.cont.register_value("pushUrl", "https://firebase.io")
        self.cont.register_definitions(Gateway)
        gateway = self.cont.build().resolve(Gateway)

        assert gateway.sms_url == "https://sms.io"
        assert gateway.push_url == "https://firebase.io"
