"""Tests for the signforge CLI — selection errors, folders, deploy, status."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler
from typer.testing import CliRunner

from signforge.cli.app import app
from signforge.cli.commands._selection import resolve_folders
from signforge.cli.commands.status import collect_status
from signforge.config import Settings
from signforge.core.errors import ConfigurationError
from signforge.core.hasher import fingerprint_folder

runner = CliRunner()

DEPLOY_ARGS = [
    "--bucket", "test-bucket",
    "--unsigned-prefix", "test/unsigned",
    "--staging-prefix", "test/staging",
    "--signed-prefix", "test/signed",
    "--signing-profile", "test_signer",
]


@pytest.fixture(autouse=True)
def _drop_rich_handlers():
    root = logging.getLogger()
    previous = root.level
    yield
    for handler in [h for h in root.handlers if isinstance(h, RichHandler)]:
        root.removeHandler(handler)
    root.setLevel(previous)


@pytest.fixture
def fake_backends(monkeypatch: pytest.MonkeyPatch, store, signer, publisher, builder):
    """Route the deploy command to the in-process fakes."""
    monkeypatch.setattr(
        "signforge.cli.commands.deploy.make_backends",
        lambda config, *, region, profile: (store, signer, publisher),
    )
    monkeypatch.setattr(
        "signforge.cli.commands.deploy.GoBuilder", lambda *args, **kwargs: builder
    )


# ---------------------------------------------------------------------------
# Folder resolution
# ---------------------------------------------------------------------------


class TestResolveFolders:
    def test_default_exclusions_from_settings(self, make_folder, source_root: Path):
        make_folder("alpha")
        make_folder("internal")
        assert resolve_folders(source_root, Settings(_env_file=None)) == ["alpha"]

    def test_explicit_exclude_replaces_default(self, make_folder, source_root: Path):
        make_folder("alpha")
        make_folder("internal")
        selected = resolve_folders(source_root, Settings(_env_file=None), exclude="alpha")
        assert selected == ["internal"]

    def test_partial_instance_pair_rejected(self, make_folder, source_root: Path):
        make_folder("alpha")
        with pytest.raises(ConfigurationError, match="together"):
            resolve_folders(source_root, Settings(_env_file=None), instance_index=0)

    def test_partition_after_include(self, make_folder, source_root: Path):
        for name in ("a", "b", "c", "d"):
            make_folder(name)
        selected = resolve_folders(
            source_root,
            Settings(_env_file=None),
            folders="d,c,b",
            instance_index=1,
            instance_count=2,
        )
        assert selected == ["c", "b"]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestHelp:
    def test_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("deploy", "folders", "status"):
            assert command in result.output


class TestFoldersCommand:
    def test_lists_eligible_folders(self, make_folder, source_root: Path):
        make_folder("beta")
        make_folder("alpha")
        make_folder("internal")
        result = runner.invoke(app, ["folders", str(source_root)])
        assert result.exit_code == 0
        lines = result.output.split()
        assert lines == ["alpha", "beta"]

    def test_empty_root(self, source_root: Path):
        result = runner.invoke(app, ["folders", str(source_root)])
        assert result.exit_code == 0
        assert "No deployable folders found." in result.output

    def test_invalid_shard(self, make_folder, source_root: Path):
        make_folder("alpha")
        result = runner.invoke(
            app, ["folders", str(source_root), "--instance-index", "3", "--instance-count", "2"]
        )
        assert result.exit_code == 2


class TestDeployCommand:
    def test_deploys_all_folders(self, fake_backends, make_folder, source_root: Path, store):
        make_folder("alpha")
        make_folder("beta")
        result = runner.invoke(app, ["deploy", str(source_root), *DEPLOY_ARGS])
        assert result.exit_code == 0, result.output
        assert "Deploying 2 folder(s)." in result.output
        assert "Took" in result.output
        assert store.keys() == ["test/signed/alpha.zip", "test/signed/beta.zip"]

    def test_only_selected_folders(self, fake_backends, make_folder, source_root: Path, store):
        make_folder("alpha")
        make_folder("beta")
        result = runner.invoke(
            app, ["deploy", str(source_root), *DEPLOY_ARGS, "--folders", "beta"]
        )
        assert result.exit_code == 0, result.output
        assert "Only deploying beta." in result.output
        assert store.keys() == ["test/signed/beta.zip"]

    def test_unknown_folder_exits_2(self, fake_backends, make_folder, source_root: Path, store):
        make_folder("alpha")
        result = runner.invoke(
            app, ["deploy", str(source_root), *DEPLOY_ARGS, "--folders", "nope"]
        )
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
        assert store.calls == []

    def test_failure_exits_1_and_names_folder(
        self, fake_backends, make_folder, source_root: Path, builder, store
    ):
        make_folder("alpha")
        make_folder("beta")
        builder.fail_for.add("beta")
        result = runner.invoke(app, ["deploy", str(source_root), *DEPLOY_ARGS])
        assert result.exit_code == 1
        assert "Deployment failed: 1 folder(s) failed: beta" in result.output
        assert store.keys() == ["test/signed/alpha.zip"]

    def test_no_update_functions(
        self, fake_backends, make_folder, source_root: Path, publisher
    ):
        make_folder("alpha")
        result = runner.invoke(
            app, ["deploy", str(source_root), *DEPLOY_ARGS, "--no-update-functions"]
        )
        assert result.exit_code == 0, result.output
        assert publisher.calls == []

    def test_alias_flag(self, fake_backends, make_folder, source_root: Path, publisher):
        make_folder("alpha")
        result = runner.invoke(
            app, ["deploy", str(source_root), *DEPLOY_ARGS, "--alias", "PROD"]
        )
        assert result.exit_code == 0, result.output
        assert publisher.calls[-1] == ("update_alias", "alpha", "PROD", "1")

    def test_missing_required_option(self, source_root: Path):
        result = runner.invoke(app, ["deploy", str(source_root), "--bucket", "b"])
        assert result.exit_code == 2

    def test_invalid_poll_settings_exit_2(
        self, monkeypatch: pytest.MonkeyPatch, fake_backends, make_folder, source_root: Path, store
    ):
        make_folder("alpha")
        monkeypatch.setenv("SIGNFORGE_SIGNING_MIN_DELAY", "-1")
        result = runner.invoke(app, ["deploy", str(source_root), *DEPLOY_ARGS])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
        assert "signing_min_delay" in result.output
        assert store.calls == []


class TestStatus:
    def test_collect_status_rows(self, make_folder, source_root: Path, store):
        alpha = make_folder("alpha")
        make_folder("beta")
        store.put("signed/alpha.zip", b"zip", {"unsignedhash": fingerprint_folder(alpha)})
        store.put("signed/beta.zip", b"zip", {"unsignedhash": "old"})

        rows = collect_status(source_root, ["alpha", "beta"], store, "signed", ("go.*", "*.go"))

        assert rows == [
            ("alpha", fingerprint_folder(alpha), True),
            ("beta", rows[1][1], False),
        ]

    def test_status_command(
        self, monkeypatch: pytest.MonkeyPatch, make_folder, source_root: Path, store
    ):
        make_folder("alpha")
        monkeypatch.setattr(
            "signforge.cli.commands.status.make_store",
            lambda bucket, *, region, profile: store,
        )
        result = runner.invoke(
            app,
            ["status", str(source_root), "--bucket", "test-bucket", "--signed-prefix", "test/signed"],
        )
        assert result.exit_code == 0, result.output
        assert "STALE" in result.output
        assert store.writes() == []
