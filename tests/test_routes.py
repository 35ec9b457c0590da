"""Tests for the HTTP endpoints."""

from __future__ import annotations

import io
import tarfile

import pytest

from ctdstore.errors import ArchiveError, BinaryNotFoundError, FetchError
from ctdstore.routes import app


class StubContainerd:
    """Records calls instead of running containerd."""

    pid = 4242
    work_dir = "/tmp/moby-ctd-stub"

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = []

    def fetch(self, image, trust=False):
        self.calls.append(("fetch", image, trust))
        if self.error:
            raise self.error

    def store(self, out):
        self.calls.append(("store",))
        if self.error:
            raise self.error
        with tarfile.open(fileobj=out, mode="w|") as tw:
            info = tarfile.TarInfo("var/lib/containerd/blob")
            info.size = 3
            tw.addfile(info, io.BytesIO(b"abc"))

    def bundle(self, path, image, config_bytes, trust=False):
        self.calls.append(("bundle", path, image, config_bytes, trust))
        if self.error:
            raise self.error
        return b"tarball"


@pytest.fixture
def stub():
    instance = StubContainerd()
    app.config["CONTAINERD"] = instance
    try:
        yield instance
    finally:
        app.config["CONTAINERD"] = None


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


class TestHealth:
    def test_ok(self, client, stub: StubContainerd) -> None:
        resp = client.get("/v1/")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok", "pid": 4242, "work_dir": "/tmp/moby-ctd-stub"}

    def test_no_instance(self, client) -> None:
        assert client.get("/v1/").status_code == 503


class TestFetchEndpoint:
    def test_fetch(self, client, stub: StubContainerd) -> None:
        resp = client.post("/v1/images/alpine:3.5/fetch")
        assert resp.status_code == 200
        assert resp.get_json() == {"image": "docker.io/library/alpine:3.5"}
        assert stub.calls == [("fetch", "alpine:3.5", False)]

    def test_trust_flag(self, client, stub: StubContainerd) -> None:
        client.post("/v1/images/library/alpine/fetch?trust=1")
        assert stub.calls == [("fetch", "library/alpine", True)]

    def test_invalid_reference(self, client, stub: StubContainerd) -> None:
        resp = client.post("/v1/images/al$pine/fetch")
        assert resp.status_code == 400
        assert stub.calls == []

    def test_fetch_failure(self, client, stub: StubContainerd) -> None:
        stub.error = FetchError("exit code 1", 1)
        assert client.post("/v1/images/alpine/fetch").status_code == 502

    def test_missing_dist(self, client, stub: StubContainerd) -> None:
        stub.error = BinaryNotFoundError("Cannot find dist in path")
        assert client.post("/v1/images/alpine/fetch").status_code == 500


class TestStoreEndpoint:
    def test_store(self, client, stub: StubContainerd) -> None:
        resp = client.get("/v1/store")
        assert resp.status_code == 200
        assert resp.mimetype == "application/x-tar"
        with tarfile.open(fileobj=io.BytesIO(resp.data)) as tar:
            assert tar.extractfile("var/lib/containerd/blob").read() == b"abc"

    def test_store_failure(self, client, stub: StubContainerd) -> None:
        stub.error = ArchiveError("Cannot archive")
        assert client.get("/v1/store").status_code == 500


class TestBundleEndpoint:
    def test_bundle(self, client, stub: StubContainerd) -> None:
        resp = client.post("/v1/bundles/containers/onboot/sh?image=alpine", data=b'{"a": 1}')
        assert resp.status_code == 200
        assert resp.data == b"tarball"
        assert resp.headers["Content-Type"] == "application/x-tar"
        assert stub.calls == [("bundle", "containers/onboot/sh", "alpine", b'{"a": 1}', False)]

    def test_missing_image(self, client, stub: StubContainerd) -> None:
        assert client.post("/v1/bundles/b", data=b"{}").status_code == 400
        assert stub.calls == []

    def test_trailing_newline_in_image(self, client, stub: StubContainerd) -> None:
        resp = client.post("/v1/bundles/b?image=alpine%0A", data=b"{}")
        assert resp.status_code == 400
        assert stub.calls == []

    def test_fetch_failure(self, client, stub: StubContainerd) -> None:
        stub.error = FetchError("exit code 3", 3)
        assert client.post("/v1/bundles/b?image=alpine", data=b"{}").status_code == 502

    def test_archive_failure(self, client, stub: StubContainerd) -> None:
        stub.error = ArchiveError("Path should be relative")
        assert client.post("/v1/bundles/b?image=alpine", data=b"{}").status_code == 500
