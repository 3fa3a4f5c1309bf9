import pytest
import requests

from kubeprep.errors import VersionResolutionFailed
from kubeprep.modules.kubeadm.versions import fetch_release_tags, resolve_release, select_latest_release


class FakeResponse:
    def __init__(self, payload=None, status_error=None, bad_json=False):
        self.payload = payload
        self.status_error = status_error
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_error:
            raise requests.HTTPError(self.status_error)

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def releases(*tags):
    return [{"tag_name": tag, "name": tag} for tag in tags]


def test_latest_release_wins():
    release = select_latest_release(["v1.29.5", "v1.30.1", "v1.30.0", "v1.28.9"])
    assert release.tag == "v1.30.1"
    assert release.minor == "1.30"
    assert release.patch == "1.30.1"


def test_versions_compare_numerically():
    assert select_latest_release(["v1.9.11", "v1.10.0"]).patch == "1.10.0"


def test_prereleases_are_ignored():
    release = select_latest_release(["v1.31.0-rc.1", "v1.31.0-alpha.2", "v1.30.2", "v1.30"])
    assert release.tag == "v1.30.2"


def test_no_strict_tag_fails():
    with pytest.raises(VersionResolutionFailed):
        select_latest_release(["v1.31.0-rc.1", "latest", ""])


def test_fetch_reads_tag_names():
    session = FakeSession(FakeResponse(releases("v1.30.1", "v1.29.5")))
    assert fetch_release_tags("https://example.test/releases", session=session) == ["v1.30.1", "v1.29.5"]
    url, kwargs = session.requests[0]
    assert url == "https://example.test/releases"
    assert kwargs["timeout"] == 30


@pytest.mark.parametrize("session", [
    FakeSession(error=requests.ConnectionError("connection refused")),
    FakeSession(FakeResponse(status_error="403 Client Error: rate limit exceeded")),
    FakeSession(FakeResponse(bad_json=True)),
    FakeSession(FakeResponse({"message": "Not Found"})),
])
def test_fetch_failures_are_reported(session):
    with pytest.raises(VersionResolutionFailed):
        fetch_release_tags(session=session)


def test_resolve_uses_latest_upstream():
    session = FakeSession(FakeResponse(releases("v1.29.5", "v1.30.1", "v1.31.0-rc.0")))
    assert resolve_release(session=session).patch == "1.30.1"


def test_pinned_version_skips_lookup():
    session = FakeSession(error=AssertionError("network must not be used"))
    release = resolve_release(pinned="1.29.3", session=session)
    assert release.tag == "v1.29.3"
    assert release.minor == "1.29"
    assert session.requests == []


def test_pinned_version_must_be_strict():
    with pytest.raises(VersionResolutionFailed):
        resolve_release(pinned="1.30")
