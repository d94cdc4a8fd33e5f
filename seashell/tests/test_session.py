from pathlib import Path

import asyncssh
import click
import pytest

from seashell.core.models import ResolvedProfile
from seashell.core.session import (
    SeashellClient,
    check_host_key,
    connect_options,
    ensure_known_hosts,
)


class TestConnectOptions:
    """测试解析结果到 asyncssh 连接参数的映射"""

    @pytest.fixture
    def profile(self, tmp_path):
        return ResolvedProfile(
            scope="work",
            alias="db",
            matched="db",
            address="10.0.0.8",
            user="bob",
            port=5022,
            known_hosts=str(tmp_path / "known_hosts"),
        )

    def test_basic_mapping(self, profile):
        options = connect_options(profile)
        assert options["host"] == "10.0.0.8"
        assert options["port"] == 5022
        assert options["username"] == "bob"
        assert options["known_hosts"] == profile.known_hosts
        assert options["connect_timeout"] == 10
        assert options["keepalive_interval"] == 0
        assert options["keepalive_count_max"] == 3

    def test_empty_algorithm_lists_use_library_defaults(self, profile):
        options = connect_options(profile)
        for option in ("kex_algs", "server_host_key_algs", "encryption_algs", "mac_algs"):
            assert option not in options
        assert "client_keys" not in options

    def test_algorithms_keep_order(self, profile):
        profile = ResolvedProfile(
            **{
                **profile.__dict__,
                "kex": ("curve25519-sha256", "diffie-hellman-group14-sha256"),
                "alg": ("ssh-ed25519",),
                "cipher": ("aes256-ctr", "aes128-ctr"),
                "mac": ("hmac-sha2-256",),
            }
        )
        options = connect_options(profile)
        assert options["kex_algs"] == ["curve25519-sha256", "diffie-hellman-group14-sha256"]
        assert options["server_host_key_algs"] == ["ssh-ed25519"]
        assert options["encryption_algs"] == ["aes256-ctr", "aes128-ctr"]
        assert options["mac_algs"] == ["hmac-sha2-256"]

    def test_identity_and_certificate(self, profile):
        profile = ResolvedProfile(
            **{**profile.__dict__, "private_key": "/keys/id", "openssh_cert": "/keys/id-cert.pub"}
        )
        options = connect_options(profile)
        assert options["client_keys"] == ["/keys/id"]
        assert options["client_certs"] == ["/keys/id-cert.pub"]

    def test_zero_timeout_disables_limit(self, profile):
        profile = ResolvedProfile(**{**profile.__dict__, "timeout": 0})
        assert connect_options(profile)["connect_timeout"] is None


def test_ensure_known_hosts_creates_file(tmp_path):
    path = tmp_path / "sub" / "known_hosts"
    assert ensure_known_hosts(str(path)) == str(path)
    assert path.exists()
    assert path.read_text() == ""


class TestHostKeyCheck:
    """测试首次连接时的主机密钥确认"""

    @pytest.fixture
    def host_key(self):
        return asyncssh.generate_private_key("ssh-ed25519").convert_to_public()

    @pytest.fixture
    def profile(self, tmp_path):
        return ResolvedProfile(
            scope="work",
            alias="db",
            matched="db",
            address="10.0.0.8",
            user="bob",
            port=22,
            known_hosts=ensure_known_hosts(str(tmp_path / "known_hosts")),
        )

    def answer(self, monkeypatch, reply):
        prompts = []

        def fake_prompt(text, **kwargs):
            prompts.append(text)
            return reply

        monkeypatch.setattr(click, "prompt", fake_prompt)
        return prompts

    @pytest.mark.parametrize("reply", ["yes", "Y", " yes "])
    def test_unknown_host_trusted(self, monkeypatch, profile, host_key, reply):
        prompts = self.answer(monkeypatch, reply)
        assert check_host_key(profile, host_key)
        assert "(yes/no/[fingerprint])" in prompts[0]

        algorithm, data = Path(profile.known_hosts).read_text().split()[1:]
        assert Path(profile.known_hosts).read_text().startswith("10.0.0.8 ")
        assert algorithm == "ssh-ed25519"
        assert asyncssh.import_public_key(f"{algorithm} {data}") == host_key

    def test_fingerprint_accepted(self, monkeypatch, profile, host_key):
        self.answer(monkeypatch, host_key.get_fingerprint())
        assert check_host_key(profile, host_key)
        assert Path(profile.known_hosts).read_text() != ""

    @pytest.mark.parametrize("reply", ["no", "", "SHA256:wrong"])
    def test_unknown_host_refused(self, monkeypatch, profile, host_key, reply):
        self.answer(monkeypatch, reply)
        assert not check_host_key(profile, host_key)
        assert Path(profile.known_hosts).read_text() == ""

    def test_trusted_key_needs_no_prompt(self, monkeypatch, profile, host_key):
        self.answer(monkeypatch, "yes")
        check_host_key(profile, host_key)

        prompts = self.answer(monkeypatch, "no")
        assert check_host_key(profile, host_key)
        assert prompts == []

    def test_changed_key_refused(self, monkeypatch, profile, host_key):
        self.answer(monkeypatch, "yes")
        check_host_key(profile, host_key)
        before = Path(profile.known_hosts).read_text()

        prompts = self.answer(monkeypatch, "yes")
        other_key = asyncssh.generate_private_key("ssh-ed25519").convert_to_public()
        assert not check_host_key(profile, other_key)
        assert prompts == []
        assert Path(profile.known_hosts).read_text() == before

    def test_non_default_port_entry(self, monkeypatch, profile, host_key):
        profile = ResolvedProfile(**{**profile.__dict__, "port": 5022})
        self.answer(monkeypatch, "yes")
        assert check_host_key(profile, host_key)
        assert Path(profile.known_hosts).read_text().startswith("[10.0.0.8]:5022 ssh-ed25519 ")

        prompts = self.answer(monkeypatch, "no")
        assert check_host_key(profile, host_key)
        assert prompts == []

    def test_client_callback(self, monkeypatch, profile, host_key):
        self.answer(monkeypatch, "yes")
        client = SeashellClient(profile)
        assert client.validate_host_public_key("10.0.0.8", "10.0.0.8", 22, host_key)
