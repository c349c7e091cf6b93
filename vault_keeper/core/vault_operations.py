"""Path normalization, vault containment and vault root validation."""

from __future__ import annotations

import enum
import logging
import ntpath
import os
import posixpath
import re
import subprocess
import sys
from pathlib import Path
from typing import Mapping, Optional

import anyio
import anyio.to_thread

from vault_keeper.constants import CONFIG_DIR_NAME, NETWORK_PROBE_TIMEOUT, NOTE_SUFFIX
from vault_keeper.data_models import VaultMetadata
from vault_keeper.errors import InvalidPath, PathOutsideVault, VaultConfigurationError

logger = logging.getLogger(__name__)

_DRIVE_PATTERN = re.compile(r"^[a-zA-Z]:[\\/]")
_SEPARATORS = re.compile(r"[\\/]")
_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>"|?*\x00-\x1f]')

_POSIX_SYSTEM_PREFIXES = (
    "/bin",
    "/boot",
    "/dev",
    "/etc",
    "/lib",
    "/lib64",
    "/proc",
    "/sbin",
    "/sys",
    "/usr",
    "/System",
    "/Library",
    "/private/etc",
)
_POSIX_SYSTEM_EXACT = frozenset(
    {"/", "/var", "/opt", "/home", "/Users", "/root", "/tmp", "/private", "/Volumes", "/mnt", "/media"}
)
_WINDOWS_SYSTEM_PREFIXES = (
    "c:/windows",
    "c:/program files",
    "c:/program files (x86)",
    "c:/programdata",
    "c:/users/all users",
    "c:/users/default",
    "c:/users/public",
)

NETWORK_FS_TYPES = frozenset(
    {
        "nfs",
        "nfs4",
        "cifs",
        "smbfs",
        "smb3",
        "afpfs",
        "ncpfs",
        "sshfs",
        "fuse.sshfs",
        "fuse.rclone",
        "fuse.s3fs",
        "fuse.gcsfuse",
        "9p",
        "davfs",
        "webdav",
        "afs",
        "ceph",
        "glusterfs",
        "lustre",
    }
)

_WINDOWS_DRIVE_REMOTE = 4


class MountKind(enum.Enum):
    """Classification of the filesystem a vault root lives on."""

    LOCAL = "local"
    NETWORK = "network"
    UNKNOWN = "unknown"


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _current_platform() -> str:
    return "windows" if os.name == "nt" else "posix"


def _is_within(path: str, prefix: str) -> bool:
    """Separator-aware prefix check on normalized ``/`` paths."""
    if prefix == "/":
        return path.startswith("/")
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def _unescape_mount_field(value: str) -> str:
    return re.sub(r"\\([0-7]{3})", lambda match: chr(int(match.group(1), 8)), value)


def _longest_mount(path: str, mounts: list[tuple[str, MountKind]]) -> MountKind:
    best: Optional[tuple[str, MountKind]] = None
    for mount_point, kind in mounts:
        if _is_within(path, mount_point) and (best is None or len(mount_point) > len(best[0])):
            best = (mount_point, kind)
    return best[1] if best else MountKind.UNKNOWN


def parse_proc_mounts(text: str, path: str) -> MountKind:
    """Classify ``path`` using the contents of a Linux ``/proc/mounts`` file."""
    mounts: list[tuple[str, MountKind]] = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        mount_point = _unescape_mount_field(fields[1])
        fs_type = fields[2].lower()
        kind = MountKind.NETWORK if fs_type in NETWORK_FS_TYPES else MountKind.LOCAL
        mounts.append((mount_point, kind))
    return _longest_mount(path, mounts)


_MACOS_MOUNT_LINE = re.compile(r"^(?P<device>.+?) on (?P<mount>.+) \((?P<options>[^)]*)\)$")


def parse_macos_mounts(text: str, path: str) -> MountKind:
    """Classify ``path`` using the output of the macOS ``mount`` command.

    Every local filesystem carries the ``local`` flag; anything else is remote.
    """
    mounts: list[tuple[str, MountKind]] = []
    for line in text.splitlines():
        match = _MACOS_MOUNT_LINE.match(line.strip())
        if not match:
            continue
        options = [option.strip() for option in match.group("options").split(",")]
        kind = MountKind.LOCAL if "local" in options else MountKind.NETWORK
        mounts.append((match.group("mount"), kind))
    return _longest_mount(path, mounts)


def _windows_mount_kind(path: str) -> MountKind:
    if path.startswith(("\\\\", "//")):
        return MountKind.NETWORK
    drive, _ = ntpath.splitdrive(path)
    if not drive:
        return MountKind.UNKNOWN

    import ctypes

    drive_type = ctypes.windll.kernel32.GetDriveTypeW(f"{drive}\\")  # type: ignore[attr-defined]
    if drive_type == _WINDOWS_DRIVE_REMOTE:
        return MountKind.NETWORK
    if drive_type in (0, 1):
        return MountKind.UNKNOWN
    return MountKind.LOCAL


def _detect_mount_kind(path: str) -> MountKind:
    """Blocking mount detection; run in a worker thread."""
    try:
        if sys.platform.startswith("win"):
            return _windows_mount_kind(path)
        if sys.platform == "darwin":
            result = subprocess.run(["mount"], capture_output=True, text=True, check=True)
            return parse_macos_mounts(result.stdout, path)
        if sys.platform.startswith("linux"):
            return parse_proc_mounts(Path("/proc/mounts").read_text(encoding="utf-8"), path)
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Could not determine mount type of '%s': %s", path, exc)
    return MountKind.UNKNOWN


async def _resolve_nearest(target: Path) -> Path:
    """Resolve ``target``, or its nearest existing ancestor when it does not exist yet."""
    candidate = anyio.Path(target)
    tail: list[str] = []
    while not (await candidate.exists() or await candidate.is_symlink()):
        if candidate.parent == candidate:
            raise FileNotFoundError(f"No existing ancestor for {target}")
        tail.insert(0, candidate.name)
        candidate = candidate.parent
    if ".." in tail:
        raise FileNotFoundError(f"Unresolvable traversal in {target}")
    resolved = await candidate.resolve(strict=True)
    return Path(resolved).joinpath(*tail)


# ==============================================================================
# PATH NORMALIZATION
# ==============================================================================


def normalize_path(path: str, platform: Optional[str] = None) -> str:
    """Normalize a path string to forward slashes, platform-aware.

    Args:
        path: Raw path supplied by a caller.
        platform: ``"windows"`` or ``"posix"``; defaults to the running platform.

    Returns:
        The normalized path. Drive letters and UNC roots are preserved, ``.`` and
        duplicate separators are collapsed, leading ``..`` segments are kept.

    Raises:
        InvalidPath: If the path is empty or its filename contains characters that
            are illegal on the target platform.
    """
    if not isinstance(path, str) or not path.strip():
        raise InvalidPath(f"Invalid path: {path!r}", {"path": repr(path)})

    platform = platform or _current_platform()
    filename = _SEPARATORS.split(path)[-1]
    illegal = _ILLEGAL_FILENAME_CHARS.search(filename)
    if illegal is None and platform == "windows" and ":" in filename and not re.fullmatch(r"[a-zA-Z]:", filename):
        illegal = re.search(":", filename)
    if illegal is not None:
        raise InvalidPath(
            f"Filename contains invalid characters: {filename}",
            {"path": path, "character": illegal.group(0)},
        )

    # UNC roots keep exactly two leading slashes
    if path.startswith("\\\\"):
        remainder = posixpath.normpath(path[2:].replace("\\", "/")).lstrip("/")
        return f"//{remainder}"

    if _DRIVE_PATTERN.match(path):
        return ntpath.normpath(path).replace("\\", "/")

    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def safe_join(vault_root: Path, *segments: str) -> Path:
    """Join relative segments onto a vault root without allowing traversal.

    Raises:
        PathOutsideVault: If a segment is absolute or the joined path climbs above
            the root.
        InvalidPath: If a segment is empty or uses illegal characters.
    """
    root = Path(vault_root)
    parts: list[str] = []
    for segment in segments:
        normalized = normalize_path(segment)
        if normalized.startswith("/") or _DRIVE_PATTERN.match(normalized) or Path(normalized).is_absolute():
            raise PathOutsideVault(segment, str(root), "absolute paths are not allowed")
        parts.append(normalized)

    joined = posixpath.normpath("/".join(parts))
    if joined == ".." or joined.startswith("../"):
        raise PathOutsideVault("/".join(segments), str(root), "parent directory traversal")
    if joined == ".":
        return root
    return root.joinpath(*joined.split("/"))


async def validate_containment(vault_root: Path, target: Path) -> Path:
    """Ensure ``target`` resolves strictly inside ``vault_root``.

    Symlinks are resolved on the target, or on its nearest existing ancestor when
    the target does not exist yet. The vault root itself is not a valid target.
    Hidden segments other than the vault configuration directory are rejected.

    Args:
        vault_root: Root directory of the vault.
        target: Absolute candidate path.

    Returns:
        ``target`` unchanged. Symlinks are followed only for the check, so callers
        act on the path they named rather than on a link target.

    Raises:
        PathOutsideVault: If the path escapes or equals the root, contains a hidden
            segment, or cannot be resolved.
    """
    try:
        resolved_root = Path(await anyio.Path(vault_root).resolve(strict=True))
        resolved = await _resolve_nearest(Path(target))
    except (OSError, RuntimeError) as exc:
        raise PathOutsideVault(str(target), str(vault_root), f"could not be resolved: {exc}") from exc

    if resolved == resolved_root or not resolved.is_relative_to(resolved_root):
        raise PathOutsideVault(str(target), str(vault_root))

    candidate = Path(target)
    relative_parts = resolved.relative_to(resolved_root).parts
    if candidate.is_relative_to(vault_root):
        relative_parts += candidate.relative_to(vault_root).parts
    if any(part.startswith(".") and part != CONFIG_DIR_NAME for part in relative_parts):
        raise PathOutsideVault(str(target), str(vault_root), "hidden path segments are not allowed")

    return candidate


async def resolve_note_path(vault: VaultMetadata, relative: str) -> Path:
    """Resolve a vault-relative note identifier to a contained absolute path.

    The ``.md`` extension is added when missing.
    """
    identifier = relative if relative.endswith(NOTE_SUFFIX) else f"{relative}{NOTE_SUFFIX}"
    candidate = safe_join(vault.path, identifier)
    return await validate_containment(vault.path, candidate)


async def resolve_directory_path(vault: VaultMetadata, relative: str) -> Path:
    """Resolve a vault-relative directory path to a contained absolute path."""
    candidate = safe_join(vault.path, relative)
    return await validate_containment(vault.path, candidate)


def note_display_name(vault: VaultMetadata, path: Path) -> str:
    """Convert a note path into a forward-slash identifier without extension."""
    relative = path.relative_to(vault.path)
    return relative.with_suffix("").as_posix()


async def ensure_vault_ready(vault: VaultMetadata) -> None:
    """Ensure the vault directory is accessible before performing operations.

    Raises:
        FileNotFoundError: If the vault path does not exist or is not a directory.
    """
    if not await anyio.Path(vault.path).is_dir():
        raise FileNotFoundError(f"Vault '{vault.name}' is not accessible at {vault.path}")


# ==============================================================================
# VAULT ROOT VALIDATION
# ==============================================================================


async def probe_mount_kind(path: Path, timeout: float = NETWORK_PROBE_TIMEOUT) -> MountKind:
    """Classify the filesystem holding ``path`` in a worker thread.

    A probe that does not finish within ``timeout`` seconds yields ``UNKNOWN``.
    """
    try:
        with anyio.fail_after(timeout):
            return await anyio.to_thread.run_sync(_detect_mount_kind, str(path), abandon_on_cancel=True)
    except TimeoutError:
        logger.warning("Mount probe for '%s' timed out after %.1fs", path, timeout)
        return MountKind.UNKNOWN


async def validate_vault_root(path: Path | str, probe_timeout: float = NETWORK_PROBE_TIMEOUT) -> Path:
    """Validate that a directory is an acceptable vault root.

    Rejects system directories, the home directory root, hidden directories,
    traversal segments, and network or undetermined mounts.

    Returns:
        The resolved root path.

    Raises:
        VaultConfigurationError: If the root is not acceptable.
    """
    raw = str(path).strip()
    if raw == "~":
        raise VaultConfigurationError(f"Vault path points to the home directory root: {raw}", {"path": raw})
    try:
        normalized = normalize_path(raw)
    except InvalidPath as exc:
        raise VaultConfigurationError(f"Invalid vault path: {exc.message}", {"path": raw}) from exc
    if ".." in normalized.split("/"):
        raise VaultConfigurationError(f"Vault path must not contain traversal segments: {raw}", {"path": raw})

    resolved = Path(await anyio.Path(os.path.expanduser(raw)).resolve())
    _reject_system_directory(raw, resolved)

    if resolved == Path.home().resolve():
        raise VaultConfigurationError(f"Vault path points to the home directory root: {resolved}", {"path": raw})

    hidden = [part for part in resolved.parts[1:] if part.startswith(".")]
    if hidden:
        raise VaultConfigurationError(
            f"Vault path must not be inside a hidden directory ({hidden[0]}): {resolved}", {"path": raw}
        )

    kind = await probe_mount_kind(resolved, probe_timeout)
    if kind is MountKind.NETWORK:
        raise VaultConfigurationError(f"Network mounts are not supported as vaults: {resolved}", {"path": raw})
    if kind is MountKind.UNKNOWN:
        raise VaultConfigurationError(
            f"Could not confirm that the vault is on a local drive: {resolved}", {"path": raw}
        )
    return resolved


def _reject_system_directory(raw: str, resolved: Path) -> None:
    for candidate in {normalize_path(raw), resolved.as_posix()}:
        folded = candidate.casefold()
        if any(_is_within(folded, prefix) for prefix in _WINDOWS_SYSTEM_PREFIXES):
            raise VaultConfigurationError(f"Path points to system directory: {candidate}", {"path": raw})
        if candidate in _POSIX_SYSTEM_EXACT or any(_is_within(candidate, prefix) for prefix in _POSIX_SYSTEM_PREFIXES):
            raise VaultConfigurationError(f"Path points to system directory: {candidate}", {"path": raw})


def check_no_overlap(roots: Mapping[str, Path]) -> None:
    """Reject duplicate vault roots and roots nested inside one another.

    Raises:
        VaultConfigurationError: Naming the first conflicting pair.
    """
    normalized = [(name, normalize_path(str(path)).rstrip("/") or "/") for name, path in roots.items()]
    if _current_platform() == "windows":
        normalized = [(name, path.casefold()) for name, path in normalized]

    for index, (first_name, first) in enumerate(normalized):
        for second_name, second in normalized[index + 1 :]:
            if first == second:
                raise VaultConfigurationError(
                    f"Vaults '{first_name}' and '{second_name}' share the same root: {first}",
                    {"vaults": [first_name, second_name]},
                )
            if _is_within(second, first) or _is_within(first, second):
                raise VaultConfigurationError(
                    f"Vaults '{first_name}' and '{second_name}' overlap: {first} / {second}",
                    {"vaults": [first_name, second_name]},
                )


# ==============================================================================
# LISTING
# ==============================================================================


async def list_markdown_files(vault_root: Path) -> list[Path]:
    """Recursively list markdown files in a vault, sorted.

    Hidden files and directories are skipped, as are entries whose resolved
    location falls outside the vault.
    """
    root = Path(vault_root)
    resolved_root = Path(await anyio.Path(root).resolve())
    results: list[Path] = []
    seen = {resolved_root}
    pending = [anyio.Path(root)]

    while pending:
        directory = pending.pop()
        async for entry in directory.iterdir():
            if entry.name.startswith("."):
                continue
            try:
                resolved = Path(await entry.resolve(strict=True))
            except OSError as exc:
                logger.warning("Skipping '%s': %s", entry, exc)
                continue
            if not resolved.is_relative_to(resolved_root):
                logger.warning("Skipping '%s': resolves outside the vault", entry)
                continue
            if await entry.is_dir():
                if resolved not in seen:
                    seen.add(resolved)
                    pending.append(entry)
            elif entry.suffix == NOTE_SUFFIX and await entry.is_file():
                results.append(Path(entry))

    return sorted(results)
