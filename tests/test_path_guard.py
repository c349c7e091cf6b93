"""Tests for path normalization, containment and vault root validation."""

import time
from pathlib import Path

import pytest

from vault_keeper.core import vault_operations
from vault_keeper.core.vault_operations import (
    MountKind,
    check_no_overlap,
    list_markdown_files,
    normalize_path,
    parse_macos_mounts,
    parse_proc_mounts,
    probe_mount_kind,
    resolve_note_path,
    safe_join,
    validate_containment,
    validate_vault_root,
)
from vault_keeper.errors import InvalidPath, PathOutsideVault, VaultConfigurationError


class TestNormalizePath:
    """Test suite for normalize_path."""

    def test_collapses_duplicate_separators_and_dots(self):
        assert normalize_path("notes//daily/./today.md", platform="posix") == "notes/daily/today.md"

    def test_backslashes_become_forward_slashes(self):
        assert normalize_path("notes\\daily\\today.md", platform="posix") == "notes/daily/today.md"

    def test_windows_drive_letter_preserved(self):
        assert normalize_path("C:\\Users\\me\\Vault", platform="windows") == "C:/Users/me/Vault"

    def test_unc_root_keeps_two_leading_slashes(self):
        assert normalize_path("\\\\server\\share\\vault", platform="windows") == "//server/share/vault"

    def test_leading_parent_segments_kept(self):
        assert normalize_path("../notes", platform="posix") == "../notes"

    def test_empty_path_rejected(self):
        with pytest.raises(InvalidPath):
            normalize_path("   ")

    @pytest.mark.parametrize("name", ["bad|name.md", "what?.md", "a<b>.md", 'quote".md'])
    def test_illegal_filename_characters_rejected(self, name):
        with pytest.raises(InvalidPath):
            normalize_path(f"notes/{name}", platform="posix")

    def test_colon_only_illegal_on_windows(self):
        assert normalize_path("notes/a:b.md", platform="posix") == "notes/a:b.md"
        with pytest.raises(InvalidPath):
            normalize_path("notes/a:b.md", platform="windows")


class TestSafeJoin:
    """Test suite for safe_join."""

    def test_joins_segments_under_root(self, tmp_path):
        assert safe_join(tmp_path, "notes", "a.md") == tmp_path / "notes" / "a.md"

    def test_dot_returns_root(self, tmp_path):
        assert safe_join(tmp_path, ".") == tmp_path

    @pytest.mark.parametrize("segment", ["../escape.md", "a/../../escape.md", ".."])
    def test_traversal_rejected(self, tmp_path, segment):
        with pytest.raises(PathOutsideVault):
            safe_join(tmp_path, segment)

    def test_absolute_segment_rejected(self, tmp_path):
        with pytest.raises(PathOutsideVault):
            safe_join(tmp_path, "/etc/passwd")

    def test_inner_parent_segments_that_stay_inside_are_allowed(self, tmp_path):
        assert safe_join(tmp_path, "a/../b.md") == tmp_path / "b.md"


class TestValidateContainment:
    """Test suite for validate_containment."""

    @pytest.mark.anyio
    async def test_nonexistent_target_inside_vault(self, vault_path):
        target = vault_path / "new" / "note.md"
        assert await validate_containment(vault_path, target) == target

    @pytest.mark.anyio
    async def test_root_itself_is_rejected(self, vault_path):
        with pytest.raises(PathOutsideVault):
            await validate_containment(vault_path, vault_path)

    @pytest.mark.anyio
    async def test_path_outside_is_rejected(self, vault_path, tmp_path):
        with pytest.raises(PathOutsideVault):
            await validate_containment(vault_path, tmp_path / "elsewhere.md")

    @pytest.mark.anyio
    async def test_symlink_escaping_vault_is_rejected(self, vault_path, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (vault_path / "link").symlink_to(outside, target_is_directory=True)

        with pytest.raises(PathOutsideVault):
            await validate_containment(vault_path, vault_path / "link" / "note.md")

    @pytest.mark.anyio
    async def test_symlinked_note_keeps_the_link_path(self, vault_path):
        (vault_path / "real.md").write_text("body")
        (vault_path / "alias.md").symlink_to(vault_path / "real.md")

        assert await validate_containment(vault_path, vault_path / "alias.md") == vault_path / "alias.md"

    @pytest.mark.anyio
    async def test_symlink_into_hidden_directory_rejected(self, vault_path):
        (vault_path / ".git").mkdir()
        (vault_path / "shortcut").symlink_to(vault_path / ".git", target_is_directory=True)

        with pytest.raises(PathOutsideVault):
            await validate_containment(vault_path, vault_path / "shortcut" / "config")

    @pytest.mark.anyio
    async def test_hidden_segments_rejected(self, vault_path):
        with pytest.raises(PathOutsideVault):
            await validate_containment(vault_path, vault_path / ".git" / "config")

    @pytest.mark.anyio
    async def test_config_directory_allowed(self, vault_path):
        target = vault_path / ".obsidian" / "search.json"
        assert await validate_containment(vault_path, target) == target

    @pytest.mark.anyio
    async def test_resolve_note_path_adds_extension(self, vault):
        assert await resolve_note_path(vault, "notes/a") == vault.path / "notes" / "a.md"
        assert await resolve_note_path(vault, "notes/a.md") == vault.path / "notes" / "a.md"


class TestMountDetection:
    """Test suite for mount table parsing and the mount probe."""

    PROC_MOUNTS = (
        "/dev/sda1 / ext4 rw,relatime 0 0\n"
        "server:/export /mnt/nas nfs4 rw 0 0\n"
        "//host/share /mnt/my\\040share cifs rw 0 0\n"
    )
    MACOS_MOUNT = (
        "/dev/disk1s1 on / (apfs, local, journaled)\n"
        "//user@host/share on /Volumes/share (smbfs, nodev, nosuid, mounted by user)\n"
    )

    def test_proc_mounts_network(self):
        assert parse_proc_mounts(self.PROC_MOUNTS, "/mnt/nas/vault") is MountKind.NETWORK

    def test_proc_mounts_local(self):
        assert parse_proc_mounts(self.PROC_MOUNTS, "/home/me/vault") is MountKind.LOCAL

    def test_proc_mounts_prefix_is_separator_aware(self):
        assert parse_proc_mounts(self.PROC_MOUNTS, "/mnt/nasty/vault") is MountKind.LOCAL

    def test_proc_mounts_escaped_spaces(self):
        assert parse_proc_mounts(self.PROC_MOUNTS, "/mnt/my share/vault") is MountKind.NETWORK

    def test_macos_mounts(self):
        assert parse_macos_mounts(self.MACOS_MOUNT, "/Volumes/share/vault") is MountKind.NETWORK
        assert parse_macos_mounts(self.MACOS_MOUNT, "/Users/me/vault") is MountKind.LOCAL

    @pytest.mark.anyio
    async def test_probe_timeout_yields_unknown(self, monkeypatch, tmp_path):
        def slow_detect(path):
            time.sleep(0.5)
            return MountKind.LOCAL

        monkeypatch.setattr(vault_operations, "_detect_mount_kind", slow_detect)
        assert await probe_mount_kind(tmp_path, timeout=0.05) is MountKind.UNKNOWN


class TestValidateVaultRoot:
    """Test suite for validate_vault_root."""

    @pytest.fixture
    def mount_kind(self, monkeypatch):
        state = {"kind": MountKind.LOCAL}

        async def fake_probe(path, timeout=2.0):
            return state["kind"]

        monkeypatch.setattr(vault_operations, "probe_mount_kind", fake_probe)
        return state

    @pytest.mark.anyio
    async def test_local_directory_accepted(self, mount_kind, vault_path):
        assert await validate_vault_root(vault_path) == vault_path.resolve()

    @pytest.mark.anyio
    @pytest.mark.parametrize("kind", [MountKind.NETWORK, MountKind.UNKNOWN])
    async def test_network_or_unknown_mount_rejected(self, mount_kind, vault_path, kind):
        mount_kind["kind"] = kind
        with pytest.raises(VaultConfigurationError):
            await validate_vault_root(vault_path)

    @pytest.mark.anyio
    @pytest.mark.parametrize("path", ["/etc", "/usr/share/notes", "/", "~", "../vault"])
    async def test_unsafe_roots_rejected(self, mount_kind, path):
        with pytest.raises(VaultConfigurationError):
            await validate_vault_root(path)

    @pytest.mark.anyio
    async def test_home_directory_rejected(self, mount_kind):
        with pytest.raises(VaultConfigurationError):
            await validate_vault_root(Path.home())

    @pytest.mark.anyio
    async def test_hidden_directory_rejected(self, mount_kind, tmp_path):
        hidden = tmp_path / ".hidden" / "vault"
        hidden.mkdir(parents=True)
        with pytest.raises(VaultConfigurationError):
            await validate_vault_root(hidden)


class TestCheckNoOverlap:
    """Test suite for check_no_overlap."""

    def test_disjoint_roots_accepted(self):
        check_no_overlap({"a": Path("/data/a"), "b": Path("/data/ab")})

    def test_nested_roots_rejected(self):
        with pytest.raises(VaultConfigurationError, match="overlap"):
            check_no_overlap({"a": Path("/data/a"), "b": Path("/data/a/sub")})

    def test_duplicate_roots_rejected(self):
        with pytest.raises(VaultConfigurationError, match="same root"):
            check_no_overlap({"a": Path("/data/a"), "b": Path("/data/a/")})


class TestListMarkdownFiles:
    """Test suite for list_markdown_files."""

    @pytest.mark.anyio
    async def test_lists_visible_markdown_only(self, vault_path):
        (vault_path / "a.md").write_text("a")
        (vault_path / "sub").mkdir()
        (vault_path / "sub" / "b.md").write_text("b")
        (vault_path / "notes.txt").write_text("x")
        (vault_path / ".hidden").mkdir()
        (vault_path / ".hidden" / "c.md").write_text("c")
        (vault_path / ".obsidian").mkdir()
        (vault_path / ".obsidian" / "d.md").write_text("d")

        files = await list_markdown_files(vault_path)

        assert files == [vault_path / "a.md", vault_path / "sub" / "b.md"]

    @pytest.mark.anyio
    async def test_skips_symlinks_outside_and_loops(self, vault_path, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.md").write_text("secret")
        (vault_path / "external").symlink_to(outside, target_is_directory=True)
        (vault_path / "sub").mkdir()
        (vault_path / "sub" / "b.md").write_text("b")
        (vault_path / "sub" / "loop").symlink_to(vault_path / "sub", target_is_directory=True)

        files = await list_markdown_files(vault_path)

        assert files == [vault_path / "sub" / "b.md"]
