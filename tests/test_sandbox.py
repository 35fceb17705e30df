"""Tests for src/agentshell/sandbox.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentshell.sandbox import SandboxViolation, resolve_working_directory


class TestResolveWorkingDirectory:
    def test_defaults_to_root(self, tmp_path: Path) -> None:
        assert resolve_working_directory(None, tmp_path) == tmp_path.resolve()

    def test_root_itself_allowed(self, tmp_path: Path) -> None:
        assert resolve_working_directory(str(tmp_path), tmp_path) == tmp_path.resolve()

    def test_subdirectory_allowed(self, tmp_path: Path) -> None:
        sub = tmp_path / "pkg" / "src"
        sub.mkdir(parents=True)
        assert resolve_working_directory(str(sub), tmp_path) == sub.resolve()

    def test_relative_path_is_relative_to_root(self, tmp_path: Path) -> None:
        (tmp_path / "pkg").mkdir()
        assert resolve_working_directory("pkg", tmp_path) == (tmp_path / "pkg").resolve()

    def test_outside_root_rejected(self, tmp_path: Path) -> None:
        root = tmp_path / "project"
        root.mkdir()
        with pytest.raises(SandboxViolation) as excinfo:
            resolve_working_directory(str(tmp_path), root)
        assert excinfo.value.root == root.resolve()
        assert "outside the project root" in str(excinfo.value)

    def test_dotdot_escape_rejected(self, tmp_path: Path) -> None:
        root = tmp_path / "project"
        root.mkdir()
        with pytest.raises(SandboxViolation):
            resolve_working_directory("../", root)

    def test_sibling_with_common_prefix_rejected(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        evil = tmp_path / "root-evil"
        root.mkdir()
        evil.mkdir()
        with pytest.raises(SandboxViolation):
            resolve_working_directory(str(evil), root)

    def test_allowed_path_accepted(self, tmp_path: Path) -> None:
        root = tmp_path / "project"
        shared = tmp_path / "shared" / "lib"
        root.mkdir()
        shared.mkdir(parents=True)
        resolved = resolve_working_directory(str(shared), root, [tmp_path / "shared"])
        assert resolved == shared.resolve()

    def test_symlink_out_of_root_rejected(self, tmp_path: Path) -> None:
        root = tmp_path / "project"
        outside = tmp_path / "outside"
        root.mkdir()
        outside.mkdir()
        (root / "link").symlink_to(outside)
        with pytest.raises(SandboxViolation):
            resolve_working_directory(str(root / "link"), root)
