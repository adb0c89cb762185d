import pytest

from app.core.errors import FetchFailed, InvalidSource
from app.utils.network import assert_allowed_url, is_loopback_host


def test_blocks_unsafe_scheme():
    with pytest.raises(InvalidSource):
        assert_allowed_url("file:///etc/passwd")


def test_allows_https_domain_when_allowlist_empty():
    assert_allowed_url("https://example.com/article")


@pytest.mark.parametrize("host", ["localhost", "127.0.0.1", "::1", "0.0.0.0", "blog.localhost"])
def test_loopback_hosts_detected(host):
    assert is_loopback_host(host)


def test_public_host_is_not_loopback():
    assert not is_loopback_host("example.com")


def test_blocks_host_resolving_to_private_range(monkeypatch):
    monkeypatch.setattr("app.utils.network.resolve_host", lambda host: ["10.0.0.8"])
    with pytest.raises(InvalidSource):
        assert_allowed_url("https://intranet.example.com/")


def test_blocks_private_ip_literal():
    with pytest.raises(InvalidSource):
        assert_allowed_url("http://192.168.1.10/admin")


def test_allowlist_rejects_other_hosts(settings_env):
    settings_env(allowed_fetch_hosts="forgejournal.com, example.org")
    assert_allowed_url("https://forgejournal.com/post")
    with pytest.raises(InvalidSource):
        assert_allowed_url("https://example.com/post")


def test_unresolvable_host_is_fetch_failure(monkeypatch):
    def fail(host):
        raise FetchFailed(f"Could not resolve host: {host}")

    monkeypatch.setattr("app.utils.network.resolve_host", fail)
    with pytest.raises(FetchFailed):
        assert_allowed_url("https://nowhere.invalid/")
