from pathlib import Path

import pytest

from conformance_harness.errors import CommandFailedError, MaterializationError
from conformance_harness.models import ExecutionResult
from conformance_harness.targets.materializer import (
    InputMaterializer,
    ReferenceKind,
    is_binary_file,
    is_git_url,
    parse_application_reference,
    parse_git_url,
    prepare_work_dir,
)


class FakeGit:
    """Records clone invocations and lays out a fake checkout."""

    def __init__(self, files=(), fail=False):
        self.calls = []
        self.files = list(files)
        self.fail = fail

    def __call__(self, executable, args, *, cwd=None, timeout=None):
        self.calls.append({"executable": executable, "args": list(args), "timeout": timeout})
        if self.fail:
            raise CommandFailedError("clone failed", ExecutionResult(exit_code=128))
        dest = Path(args[-1])
        (dest / ".git").mkdir(parents=True)
        (dest / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
        for relative in self.files:
            target = dest / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("", encoding="utf-8")
        return ExecutionResult()


@pytest.mark.parametrize(
    ("path", "expected"),
    [("app.jar", True), ("APP.WAR", True), ("lib/x.Ear", True), ("app.zip", False), ("src", False)],
)
def test_is_binary_file(path, expected):
    assert is_binary_file(path) is expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/org/repo.git", True),
        ("http://host/repo", True),
        ("git@github.com:org/repo.git", True),
        ("/abs/path", False),
        ("relative/dir", False),
    ],
)
def test_is_git_url(url, expected):
    assert is_git_url(url) is expected


def test_parse_git_reference_with_ref_and_subpath():
    reference = parse_application_reference("https://github.com/org/repo.git#main/sub/dir")

    assert reference.kind is ReferenceKind.GIT
    assert reference.location == "https://github.com/org/repo.git"
    assert reference.ref == "main"
    assert reference.subpath == "sub/dir"


def test_parse_git_reference_without_fragment():
    reference = parse_application_reference("git@github.com:org/repo.git")

    assert reference.kind is ReferenceKind.GIT
    assert reference.ref == ""
    assert reference.subpath == ""


def test_binary_extension_wins_over_other_forms():
    assert parse_application_reference("https://host/app.war").kind is ReferenceKind.BINARY
    assert parse_application_reference("binary:/opt/app.jar").kind is ReferenceKind.BINARY


def test_legacy_binary_prefix_and_local_path():
    legacy = parse_application_reference("binary:/opt/app")
    local = parse_application_reference("/srv/app")

    assert legacy.kind is ReferenceKind.LEGACY_BINARY
    assert legacy.location == "/opt/app"
    assert local.kind is ReferenceKind.LOCAL
    assert local.location == "/srv/app"


def test_parse_git_url_keeps_full_branch():
    assert parse_git_url("https://host/repo.git#feature/test") == (
        "https://host/repo.git",
        "feature/test",
    )


def test_prepare_work_dir_is_namespaced_by_test(tmp_path):
    work_dir = prepare_work_dir(tmp_path / "work", "my-test")

    assert work_dir == (tmp_path / "work" / "my-test").resolve()
    assert work_dir.is_dir()


def test_materialize_relative_binary_resolves_against_test_dir(tmp_path):
    (tmp_path / "app.jar").write_bytes(b"PK")
    materializer = InputMaterializer(command_runner=FakeGit())

    assert materializer.materialize("app.jar", tmp_path) == str(tmp_path / "app.jar")


def test_materialize_missing_binary_fails(tmp_path):
    materializer = InputMaterializer(command_runner=FakeGit())

    with pytest.raises(MaterializationError, match="binary file not found"):
        materializer.materialize("missing.war", tmp_path)
    with pytest.raises(MaterializationError, match="binary file not found"):
        materializer.materialize(str(tmp_path / "absent.ear"), tmp_path)


def test_materialize_legacy_and_local_paths_pass_through(tmp_path):
    materializer = InputMaterializer(command_runner=FakeGit())

    assert materializer.materialize("binary:/opt/app", tmp_path) == "/opt/app"
    assert materializer.materialize("/srv/app", tmp_path) == "/srv/app"


def test_materialize_git_clones_shallow_and_removes_git_dir(tmp_path):
    git = FakeGit(files=["sub/dir/pom.xml"])
    materializer = InputMaterializer(command_runner=git, clone_timeout=42)

    path = materializer.materialize("https://github.com/org/repo.git#main/sub/dir", tmp_path)

    clone_dir = (tmp_path / "source").resolve()
    assert path == str(clone_dir / "sub" / "dir")
    assert git.calls == [
        {
            "executable": "git",
            "args": [
                "clone",
                "--depth",
                "1",
                "--branch",
                "main",
                "https://github.com/org/repo.git",
                str(clone_dir),
            ],
            "timeout": 42,
        }
    ]
    assert not (clone_dir / ".git").exists()


def test_materialize_git_is_idempotent(tmp_path):
    (tmp_path / "source").mkdir()
    git = FakeGit()
    materializer = InputMaterializer(command_runner=git)

    path = materializer.materialize("https://github.com/org/repo.git", tmp_path)

    assert path == str((tmp_path / "source").resolve())
    assert git.calls == []


def test_materialize_git_missing_subpath_fails(tmp_path):
    materializer = InputMaterializer(command_runner=FakeGit())

    with pytest.raises(MaterializationError, match="specified path does not exist"):
        materializer.materialize("https://github.com/org/repo.git#main/nowhere", tmp_path)


def test_materialize_git_clone_failure(tmp_path):
    materializer = InputMaterializer(command_runner=FakeGit(fail=True))

    with pytest.raises(MaterializationError, match="git clone failed"):
        materializer.materialize("git@github.com:org/repo.git#v1", tmp_path)
