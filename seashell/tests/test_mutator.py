import pytest
import yaml

from seashell.config.storage import ConfigStorage
from seashell.config.validator import ConfigValidator
from seashell.core.errors import (
    AmbiguousBlockClassification,
    DuplicateAlias,
    DuplicateScope,
    InvalidField,
    InvalidPattern,
    UnknownScope,
    UnknownServer,
)
from seashell.core.models import DEFAULT_SCOPE, FieldSet
from seashell.core.mutator import ConfigMutator
from seashell.core.resolver import Resolver

INITIAL = """\
user: admin
scopes:
  work:
    user: bob
servers:
  nas: 192.168.1.5
  work:
    test: 10.0.0.7
    vm\\d+: $h.cluster.local
"""


class TestConfigMutator:
    """测试配置的增删改"""

    @pytest.fixture
    def storage(self, tmp_path):
        storage = ConfigStorage(tmp_path)
        storage.config_path.write_text(INITIAL, encoding="utf-8")
        return storage

    @pytest.fixture
    def mutator(self, storage):
        validator = ConfigValidator()
        return ConfigMutator(storage, validator.validate(storage.load()), validator)

    def reload(self, storage):
        return ConfigValidator().validate(storage.load())

    def test_add_server_then_resolve(self, mutator, storage):
        mutator.add_server("work", "db", "10.0.0.8", {"port": 5022})

        for store in (mutator.store, self.reload(storage)):
            profile = Resolver(store, identity="me").resolve("work", "db")
            assert profile.destination == "bob@10.0.0.8:5022"

    def test_add_pattern_server(self, mutator):
        entry = mutator.add_server(DEFAULT_SCOPE, "web-\\d+", "$h.example.com")
        assert entry.is_pattern
        profile = Resolver(mutator.store, identity="me").resolve(DEFAULT_SCOPE, "web-12")
        assert profile.address == "web-12.example.com"

    def test_remove_server(self, mutator, storage):
        mutator.remove_server("work", "test")
        with pytest.raises(UnknownServer):
            Resolver(mutator.store).match("work", "test")
        assert [e.key for e in self.reload(storage).entries("work")] == ["vm\\d+"]

    def test_remove_last_server_drops_block(self, mutator, storage):
        mutator.remove_server(DEFAULT_SCOPE, "nas")
        assert DEFAULT_SCOPE not in mutator.store.servers
        assert "nas" not in storage.load()["servers"]

    def test_update_server(self, mutator):
        entry = mutator.update_server("work", "test", address="10.0.0.70", changes={"port": 2222})
        assert entry.address == "10.0.0.70"
        assert entry.fields.port == 2222

        entry = mutator.update_server("work", "test", changes={"port": None})
        assert entry.address == "10.0.0.70"
        assert entry.fields.is_empty()

    def test_update_keeps_declaration_order(self, mutator):
        mutator.update_server("work", "test", changes={"user": "ops"})
        assert [e.key for e in mutator.store.entries("work")] == ["test", "vm\\d+"]

    def test_add_update_remove_scope(self, mutator, storage):
        scope = mutator.add_scope("home", {"user": "alice", "port": 2200})
        assert scope.fields == FieldSet(user="alice", port=2200)

        scope = mutator.update_scope("home", {"port": None, "timeout": 30})
        assert scope.fields == FieldSet(user="alice", timeout=30)

        mutator.add_server("home", "nas", "192.168.1.50")
        mutator.remove_scope("home")
        assert not mutator.store.has_scope("home")
        assert "home" not in mutator.store.servers

        raw = storage.load()
        assert "home" not in raw["scopes"]
        assert "home" not in raw["servers"]

    def test_remove_scope_removes_its_servers(self, mutator):
        mutator.remove_scope("work")
        assert mutator.store.entries("work") == []
        with pytest.raises(UnknownScope):
            Resolver(mutator.store).resolve("work", "test")

    def test_clear_defaults_keeps_global_servers(self, mutator):
        mutator.clear_defaults()
        assert mutator.store.defaults.fields.is_empty()
        assert [e.key for e in mutator.store.entries(DEFAULT_SCOPE)] == ["nas"]

    def test_set_defaults(self, mutator, storage):
        mutator.set_defaults({"port": 2022, "cipher": ["aes256-ctr"]})
        raw = storage.load()
        assert raw["port"] == 2022
        assert raw["cipher"] == ["aes256-ctr"]
        assert raw["user"] == "admin"

    @pytest.mark.parametrize(
        "operation,error",
        [
            (lambda m: m.add_scope("work"), DuplicateScope),
            (lambda m: m.add_scope("servers"), InvalidField),
            (lambda m: m.add_scope("nas"), AmbiguousBlockClassification),
            (lambda m: m.add_server("work", "test", "10.0.0.9"), DuplicateAlias),
            (lambda m: m.add_server(DEFAULT_SCOPE, "work", "10.0.0.9"), AmbiguousBlockClassification),
            (lambda m: m.add_server("work", "vm[", "$h"), InvalidPattern),
            (lambda m: m.add_server("work", "db", "10.0.0.8", {"port": 70000}), InvalidField),
            (lambda m: m.add_server("work", "db", ""), InvalidField),
            (lambda m: m.add_server("nowhere", "db", "10.0.0.8"), UnknownScope),
            (lambda m: m.update_scope("work", {"timeout": -1}), InvalidField),
            (lambda m: m.update_scope("work", {"username": "x"}), InvalidField),
            (lambda m: m.update_server("work", "missing", address="10.0.0.1"), UnknownServer),
            (lambda m: m.remove_server("work", "missing"), UnknownServer),
            (lambda m: m.remove_scope("nowhere"), UnknownScope),
        ],
    )
    def test_rejected_mutation_changes_nothing(self, mutator, storage, operation, error):
        before_text = storage.config_path.read_bytes()
        before_store = mutator.store.to_document()

        with pytest.raises(error):
            operation(mutator)

        assert storage.config_path.read_bytes() == before_text
        assert mutator.store.to_document() == before_store

    def test_persistence_failure_keeps_store(self, mutator, storage, monkeypatch):
        before_text = storage.config_path.read_bytes()
        before_store = mutator.store.to_document()

        def broken_save(document):
            raise OSError("disk full")

        monkeypatch.setattr(storage, "save", broken_save)
        with pytest.raises(OSError):
            mutator.add_server("work", "db", "10.0.0.8")

        assert storage.config_path.read_bytes() == before_text
        assert mutator.store.to_document() == before_store

    def test_written_document_reloads_identically(self, mutator, storage):
        mutator.add_scope("lab", {"kex": ["curve25519-sha256"], "interval": 5})
        mutator.add_server("lab", "node-\\w+", "$h.lab", {"user": "root"})
        reloaded = self.reload(storage)
        assert reloaded.to_document() == mutator.store.to_document()

    def test_first_write_creates_file(self, tmp_path):
        storage = ConfigStorage(tmp_path / "fresh")
        mutator = ConfigMutator(storage, ConfigValidator().validate(None))
        mutator.add_server(DEFAULT_SCOPE, "web", "10.0.0.1")
        assert yaml.safe_load(storage.config_path.read_text()) == {
            "scopes": {},
            "servers": {"web": "10.0.0.1"},
        }
