"""Shared test fixtures for signforge.

External collaborators (compiler, signing service, function service) are
replaced by in-process fakes; the object store is an
in-memory ``MemoryStore`` wrapped to count calls.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import pytest

from signforge.core.builder import GoBuilder
from signforge.core.errors import BuildError, FunctionUpdateError, SigningError, StoreError
from signforge.core.hasher import source_files
from signforge.core.pipeline import FolderPipeline
from signforge.models.artifacts import ObjectHead
from signforge.models.config import DeployConfig, PollWindow


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class MemoryStore:
    """In-memory ``ArtifactStore`` with S3-like versioning and metadata."""

    def __init__(self, bucket: str = "test-bucket") -> None:
        self.bucket = bucket
        self._objects: dict[str, tuple[bytes, str, dict[str, str] | None]] = {}
        self._objects_lock = threading.Lock()

    def put(self, key: str, data: bytes, metadata: dict[str, str] | None = None) -> str:
        version_id = uuid.uuid4().hex
        with self._objects_lock:
            self._objects[key] = (bytes(data), version_id, dict(metadata) if metadata else None)
        return version_id

    def get(self, key: str) -> bytes:
        with self._objects_lock:
            entry = self._objects.get(key)
        if entry is None:
            raise StoreError(f"Failed to get {key}: no such key")
        return entry[0]

    def head(self, key: str) -> ObjectHead | None:
        with self._objects_lock:
            entry = self._objects.get(key)
        if entry is None:
            return None
        data, version_id, metadata = entry
        return ObjectHead(key=key, version_id=version_id, size_bytes=len(data), metadata=metadata)

    def copy(self, src_key: str, dst_key: str, metadata: dict[str, str]) -> None:
        data = MemoryStore.get(self, src_key)
        MemoryStore.put(self, dst_key, data, metadata)

    def delete(self, key: str) -> None:
        # Deleting a missing key is not an error, as in S3.
        with self._objects_lock:
            self._objects.pop(key, None)

    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        with self._objects_lock:
            return sorted(self._objects)


class CountingStore(MemoryStore):
    """MemoryStore that counts calls and can be told to fail some."""

    WRITE_OPS = ("put", "copy", "delete")

    def __init__(self, bucket: str = "test-bucket") -> None:
        super().__init__(bucket)
        self._lock = threading.Lock()
        self.calls: list[tuple[str, str]] = []
        self.fail_ops: dict[str, set[str]] = {}  # op -> keys (or {"*"})

    def _record(self, op: str, key: str) -> None:
        with self._lock:
            self.calls.append((op, key))
        keys = self.fail_ops.get(op, set())
        if "*" in keys or key in keys:
            raise StoreError(f"injected {op} failure for {key}")

    def writes(self) -> list[tuple[str, str]]:
        with self._lock:
            return [c for c in self.calls if c[0] in self.WRITE_OPS]

    def reset_calls(self) -> None:
        with self._lock:
            self.calls.clear()

    def put(self, key: str, data: bytes, metadata: dict[str, str] | None = None) -> str:
        self._record("put", key)
        return super().put(key, data, metadata)

    def get(self, key: str) -> bytes:
        self._record("get", key)
        return super().get(key)

    def head(self, key: str) -> ObjectHead | None:
        self._record("head", key)
        return super().head(key)

    def copy(self, src_key: str, dst_key: str, metadata: dict[str, str]) -> None:
        self._record("copy", dst_key)
        super().copy(src_key, dst_key, metadata)

    def delete(self, key: str) -> None:
        self._record("delete", key)
        super().delete(key)


class FakeBuilder(GoBuilder):
    """Builder whose "compiler" concatenates the folder's source files.

    Packaging is the real ``GoBuilder.package``.
    """

    def __init__(self, fail_for: set[str] | None = None) -> None:
        super().__init__(env={}, entry_name="main")
        self.fail_for = fail_for or set()
        self.built: list[Path] = []
        self._lock = threading.Lock()

    @contextmanager
    def build(self, folder: Path) -> Iterator[Path]:
        folder = Path(folder)
        if folder.name in self.fail_for:
            raise BuildError(f"Compiler exited with status 1 for {folder.name}")
        workdir = folder.parent.parent / f"build-{folder.name}-{uuid.uuid4().hex[:8]}"
        workdir.mkdir()
        executable = workdir / folder.name
        executable.write_bytes(
            b"".join(p.read_bytes() for p in source_files(folder))
        )
        with self._lock:
            self.built.append(executable)
        try:
            yield executable
        finally:
            executable.unlink(missing_ok=True)
            workdir.rmdir()


class FakeSigner:
    """Signer that "signs" by appending the job id to the unsigned package."""

    def __init__(self, store: MemoryStore, staging_prefix: str, *, fail: bool = False) -> None:
        self.store = store
        self.staging_prefix = staging_prefix
        self.fail = fail
        self.jobs: dict[str, tuple[str, str]] = {}
        self._lock = threading.Lock()

    def submit(self, unsigned_key: str, version_id: str) -> str:
        job_id = uuid.uuid4().hex
        with self._lock:
            self.jobs[job_id] = (unsigned_key, version_id)
        return job_id

    def await_completion(self, job_id: str) -> None:
        if self.fail:
            raise SigningError(f"Signing job {job_id} failed: injected")
        unsigned_key, _ = self.jobs[job_id]
        data = MemoryStore.get(self.store, unsigned_key)
        MemoryStore.put(
            self.store,
            f"{self.staging_prefix}/{job_id}.zip",
            data + f"\nSIGNATURE:{job_id}".encode(),
        )


class FakePublisher:
    """Records every call; publishes monotonically increasing versions."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[tuple[Any, ...]] = []
        self._versions: dict[str, int] = {}
        self._lock = threading.Lock()

    def _call(self, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)
        if call[0] == self.fail_on:
            raise FunctionUpdateError(f"injected {call[0]} failure")

    def update_code(self, function_name: str, bucket: str, key: str) -> None:
        self._call("update_code", function_name, bucket, key)

    def await_code_updated(self, function_name: str) -> None:
        self._call("await_code_updated", function_name)

    def publish_version(self, function_name: str, code_sha256: str) -> str:
        self._call("publish_version", function_name, code_sha256)
        with self._lock:
            self._versions[function_name] = self._versions.get(function_name, 0) + 1
            return str(self._versions[function_name])

    def update_alias(self, function_name: str, alias_name: str, version: str) -> None:
        self._call("update_alias", function_name, alias_name, version)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def deploy_config() -> DeployConfig:
    """A DeployConfig with test prefixes and short poll windows."""
    return DeployConfig(
        bucket="test-bucket",
        unsigned_prefix="test/unsigned",
        staging_prefix="test/staging",
        signed_prefix="test/signed",
        signing_profile="test_signer",
        signing_poll=PollWindow(min_delay=0.01, max_delay=0.01, max_wait=1.0),
        function_poll=PollWindow(min_delay=0.01, max_delay=0.01, max_wait=1.0),
    )


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    """An empty directory to hold function folders."""
    root = tmp_path / "lambdas"
    root.mkdir()
    return root


@pytest.fixture
def make_folder(source_root: Path) -> Callable[..., Path]:
    """Factory fixture: create a function folder with the given files."""

    def _factory(name: str, files: dict[str, str] | None = None) -> Path:
        folder = source_root / name
        folder.mkdir(parents=True, exist_ok=True)
        contents = files if files is not None else {
            "go.mod": f"module {name}\n\ngo 1.21\n",
            "main.go": f"package main\n\nfunc main() {{ println({name!r}) }}\n",
        }
        for filename, text in contents.items():
            path = folder / filename
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
        return folder

    return _factory


@pytest.fixture
def store() -> CountingStore:
    """A fresh counting in-memory store."""
    return CountingStore()


@pytest.fixture
def builder() -> FakeBuilder:
    return FakeBuilder()


@pytest.fixture
def signer(store: CountingStore, deploy_config: DeployConfig) -> FakeSigner:
    return FakeSigner(store, deploy_config.staging_prefix)


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def make_pipeline(
    deploy_config: DeployConfig,
    source_root: Path,
    store: CountingStore,
    builder: FakeBuilder,
    signer: FakeSigner,
    publisher: FakePublisher,
) -> Callable[..., FolderPipeline]:
    """Factory fixture: a FolderPipeline wired to the fakes, with overrides."""

    def _factory(**overrides: Any) -> FolderPipeline:
        config_updates = overrides.pop("config", {})
        kwargs: dict[str, Any] = {
            "root": source_root,
            "store": store,
            "builder": builder,
            "signer": signer,
            "publisher": publisher,
        }
        kwargs.update(overrides)
        return FolderPipeline(deploy_config.model_copy(update=config_updates), **kwargs)

    return _factory
