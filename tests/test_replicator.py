"""Tests for DirectoryReplicator."""

import os
import stat

import pytest

from conftest import make_dirs
from errors import MissingSourceError, ReplicationError
from model import MissingSourcePolicy
from replicator import AncestorStep, DirectoryReplicator


def mode_of(path) -> int:
    return stat.S_IMODE(os.lstat(path).st_mode)


@pytest.fixture
def replicator(ops, ephemeral_root):
    return DirectoryReplicator(ops, MissingSourcePolicy.STRICT, str(ephemeral_root))


class TestSteps:
    """Test the planned walk."""

    def test_steps_pair_source_and_target(self, replicator):
        assert replicator.steps("/state", "/var/lib/iwd") == (
            AncestorStep("/state/var", "/var"),
            AncestorStep("/state/var/lib", "/var/lib"),
            AncestorStep("/state/var/lib/iwd", "/var/lib/iwd"),
        )

    def test_physical_target(self, replicator, ephemeral_root):
        assert replicator.physical_target("/var/lib") == f"{ephemeral_root}/var/lib"

    def test_physical_target_default_root(self, ops):
        assert DirectoryReplicator(ops).physical_target("/var/lib") == "/var/lib"


class TestReplicate:
    """Test replicating ancestor directories."""

    def test_creates_every_ancestor_with_source_modes(self, replicator, state_dir, ephemeral_root):
        make_dirs(state_dir, "var", 0o755)
        make_dirs(state_dir, "var/lib", 0o751)
        make_dirs(state_dir, "var/lib/iwd", 0o700)

        replicator.replicate(str(state_dir), "/var/lib/iwd")

        assert mode_of(ephemeral_root / "var") == 0o755
        assert mode_of(ephemeral_root / "var/lib") == 0o751
        assert mode_of(ephemeral_root / "var/lib/iwd") == 0o700

    def test_ownership_matches_source(self, replicator, state_dir, ephemeral_root):
        make_dirs(state_dir, "etc/ssh", 0o755)

        replicator.replicate(str(state_dir), "/etc/ssh")

        for rel in ("etc", "etc/ssh"):
            src = os.stat(state_dir / rel)
            dst = os.stat(ephemeral_root / rel)
            assert (dst.st_uid, dst.st_gid) == (src.st_uid, src.st_gid)

    def test_special_mode_bits_copied(self, replicator, state_dir, ephemeral_root):
        """Sticky and setgid bits travel with the mode."""
        shared = make_dirs(state_dir, "srv/shared", 0o755)
        shared.chmod(0o3775)

        replicator.replicate(str(state_dir), "/srv/shared")

        assert mode_of(ephemeral_root / "srv/shared") == 0o3775

    def test_existing_target_is_corrected(self, replicator, state_dir, ephemeral_root):
        make_dirs(state_dir, "var/lib/iwd", 0o700)
        existing = make_dirs(ephemeral_root, "var/lib/iwd", 0o777)

        replicator.replicate(str(state_dir), "/var/lib/iwd")

        assert mode_of(existing) == 0o700

    def test_source_never_modified(self, replicator, state_dir, ephemeral_root):
        """Metadata only flows from persistent to ephemeral."""
        make_dirs(state_dir, "var/lib", 0o750)
        make_dirs(ephemeral_root, "var/lib", 0o777)

        replicator.replicate(str(state_dir), "/var/lib")

        assert mode_of(state_dir / "var/lib") == 0o750
        assert mode_of(state_dir / "var") == 0o750

    def test_second_run_makes_no_changes(self, replicator, ops, state_dir):
        make_dirs(state_dir, "var/lib/iwd", 0o700)
        replicator.replicate(str(state_dir), "/var/lib/iwd")
        assert ops.mutations

        ops.mutations.clear()
        replicator.replicate(str(state_dir), "/var/lib/iwd")

        assert ops.mutations == []

    def test_root_target_is_noop(self, replicator, ops, state_dir):
        assert replicator.replicate(str(state_dir), "/") == ()
        assert ops.mutations == []


class TestSymlinkSafety:
    """A symlinked persistent ancestor lends its target's metadata, never its own."""

    def test_uses_resolved_source_metadata(self, replicator, state_dir, ephemeral_root, tmp_path):
        real = tmp_path / "elsewhere" / "lib"
        real.mkdir(parents=True)
        real.chmod(0o710)
        make_dirs(state_dir, "var", 0o755)
        (state_dir / "var" / "lib").symlink_to(real)

        replicator.replicate(str(state_dir), "/var/lib")

        target = ephemeral_root / "var" / "lib"
        assert target.is_dir() and not target.is_symlink()
        assert mode_of(target) == 0o710
        # The symlink's own mode would be 0o777
        assert mode_of(state_dir / "var" / "lib") == 0o777

    def test_dangling_source_symlink_is_missing(self, replicator, state_dir, tmp_path):
        make_dirs(state_dir, "var", 0o755)
        (state_dir / "var" / "lib").symlink_to(tmp_path / "gone")

        with pytest.raises(MissingSourceError) as exc:
            replicator.replicate(str(state_dir), "/var/lib")
        assert exc.value.path == os.path.realpath(tmp_path / "gone")

    def test_symlink_loop_raises_replication_error(self, replicator, state_dir, ephemeral_root):
        (state_dir / "var").symlink_to(state_dir / "var")

        with pytest.raises(ReplicationError, match="Cannot replicate"):
            replicator.replicate(str(state_dir), "/var/lib")

        assert not (ephemeral_root / "var").exists()

    def test_symlink_on_ephemeral_side_refused(self, replicator, state_dir, ephemeral_root, tmp_path):
        make_dirs(state_dir, "var/lib", 0o755)
        (tmp_path / "decoy").mkdir()
        (ephemeral_root / "var").symlink_to(tmp_path / "decoy")

        with pytest.raises(ReplicationError, match="is a symlink"):
            replicator.replicate(str(state_dir), "/var/lib")
        assert not (tmp_path / "decoy" / "lib").exists()

    def test_file_on_ephemeral_side_refused(self, replicator, state_dir, ephemeral_root):
        make_dirs(state_dir, "var/lib", 0o755)
        (ephemeral_root / "var").write_text("not a directory")

        with pytest.raises(ReplicationError, match="not a directory"):
            replicator.replicate(str(state_dir), "/var/lib")


class TestMissingSourcePolicy:
    """Strict and create policies for missing persistent directories."""

    def test_strict_raises_with_resolved_path(self, replicator, state_dir):
        with pytest.raises(MissingSourceError) as exc:
            replicator.replicate(str(state_dir), "/var/lib/iwd")
        assert exc.value.path == f"{state_dir}/var/lib/iwd"
        assert "does not exist" in str(exc.value)

    def test_strict_missing_leaf_leaves_no_scaffolding(self, replicator, state_dir, ephemeral_root, ops):
        make_dirs(state_dir, "var/lib", 0o755)

        with pytest.raises(MissingSourceError):
            replicator.replicate(str(state_dir), "/var/lib/iwd")

        assert not (ephemeral_root / "var").exists()
        assert ops.mutations == []

    def test_strict_source_file_is_not_a_directory(self, replicator, state_dir):
        make_dirs(state_dir, "var", 0o755)
        (state_dir / "var" / "lib").write_text("")

        with pytest.raises(MissingSourceError, match="is not a directory"):
            replicator.replicate(str(state_dir), "/var/lib")

    def test_create_makes_source_and_target(self, ops, state_dir, ephemeral_root):
        replicator = DirectoryReplicator(ops, MissingSourcePolicy.CREATE, str(ephemeral_root))

        replicator.replicate(str(state_dir), "/var/lib/iwd")

        assert (state_dir / "var" / "lib" / "iwd").is_dir()
        assert (ephemeral_root / "var" / "lib" / "iwd").is_dir()
        assert mode_of(ephemeral_root / "var/lib/iwd") == mode_of(state_dir / "var/lib/iwd")

    def test_create_keeps_existing_sources(self, ops, state_dir, ephemeral_root):
        make_dirs(state_dir, "var", 0o711)
        replicator = DirectoryReplicator(ops, MissingSourcePolicy.CREATE, str(ephemeral_root))

        replicator.replicate(str(state_dir), "/var/cache")

        assert mode_of(state_dir / "var") == 0o711
        assert mode_of(ephemeral_root / "var") == 0o711


class TestDryRun:
    """Dry-run replication records without touching the filesystem."""

    def test_dry_run_records_only(self, mountinfo, state_dir, ephemeral_root):
        from conftest import RecordingOps

        ops = RecordingOps(mountinfo, dry_run=True)
        make_dirs(state_dir, "var/lib/iwd", 0o700)
        replicator = DirectoryReplicator(ops, MissingSourcePolicy.STRICT, str(ephemeral_root))

        replicator.replicate(str(state_dir), "/var/lib/iwd")

        assert not (ephemeral_root / "var").exists()
        assert f"mkdir {ephemeral_root}/var/lib/iwd" in ops.mutations
        assert f"chmod 0700 {ephemeral_root}/var/lib/iwd" in ops.mutations
