"""Configuration loading tests."""

import pytest

from contracts import ConfigError
from webmail_relay.config import Credentials, load_credentials

BASE_ENV = {"EMAIL_USER": "relay@example.com", "EMAIL_PASS": "secret123"}


class TestLoadCredentials:
    def test_defaults(self):
        creds = load_credentials(BASE_ENV)

        assert creds.host == "imap.gmail.com"
        assert creds.port == 993
        assert creds.use_ssl is True
        assert creds.mailbox == "INBOX"
        assert creds.connect_timeout == 30.0
        assert creds.read_timeout == 30.0

    def test_overrides(self):
        creds = load_credentials({
            **BASE_ENV,
            "IMAP_HOST": "mail.example.com",
            "IMAP_PORT": "143",
            "IMAP_USE_SSL": "false",
            "IMAP_MAILBOX": "Archive",
            "IMAP_CONNECT_TIMEOUT": "5",
            "IMAP_SOCKET_TIMEOUT": "12.5",
        })

        assert creds.host == "mail.example.com"
        assert creds.port == 143
        assert creds.use_ssl is False
        assert creds.mailbox == "Archive"
        assert creds.connect_timeout == 5.0
        assert creds.read_timeout == 12.5

    @pytest.mark.parametrize("missing", ["EMAIL_USER", "EMAIL_PASS"])
    def test_required_variables(self, missing):
        env = dict(BASE_ENV)
        del env[missing]
        with pytest.raises(ConfigError):
            load_credentials(env)

    @pytest.mark.parametrize(
        "name,value",
        [
            ("IMAP_PORT", "imaps"),
            ("IMAP_PORT", "0"),
            ("IMAP_USE_SSL", "maybe"),
            ("IMAP_SOCKET_TIMEOUT", "soon"),
            ("IMAP_CONNECT_TIMEOUT", "-1"),
        ],
    )
    def test_malformed_values(self, name, value):
        with pytest.raises(ConfigError):
            load_credentials({**BASE_ENV, name: value})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("EMAIL_USER", "env@example.com")
        monkeypatch.setenv("EMAIL_PASS", "pw")
        monkeypatch.delenv("IMAP_HOST", raising=False)

        assert load_credentials().username == "env@example.com"


class TestCredentials:
    def test_password_not_in_repr(self):
        creds = Credentials(host="h", username="u", password="secret123")
        assert "secret123" not in repr(creds)

    def test_tls_on_by_default(self):
        creds = Credentials(host="h", username="u", password="p")
        assert creds.use_ssl is True
