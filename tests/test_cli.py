"""Tests for the CLI commands."""

import gzip
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from idgsync.cli import main
from idgsync.exceptions import IdgDownloadError, IdgNetworkError
from idgsync.mirrors import MASTER_MIRROR

LISTING = """\
./newstuff:
-rw-r--r--   1 ftp  ftp      1024 Jan  5  2011 patch.wad
"""


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mirror(temp_dir):
    """Create a mirror root with a cached listing."""
    root = temp_dir / "mirror"
    root.mkdir()
    write_listing(root / "ls-laR.gz", LISTING)
    return root


@pytest.fixture
def mock_config(temp_dir):
    """Patch the user configuration with empty defaults."""
    with patch("idgsync.cli.config") as config:
        config.mirror_path = None
        config.mirror_url = None
        config.exclude_mirrors = []
        config.tempdir = str(temp_dir)
        yield config


@pytest.fixture
def mock_client(temp_dir):
    """Patch the mirror client with one that serves 1024 byte files."""
    with patch("idgsync.cli.MirrorClient") as client_cls:
        client = client_cls.return_value
        client.master_mirror = MASTER_MIRROR

        def fetch(relative_path, base_url=None, progress_callback=None):
            path = temp_dir / f"idgs.{relative_path.replace('/', '_')}.tmp"
            path.write_bytes(b"x" * 1024)
            return path

        client.fetch.side_effect = fetch
        yield client


def write_listing(path, text):
    with gzip.open(path, "wt", encoding="utf-8") as f:
        f.write(text)


class TestSyncCommand:
    """Tests for the sync command."""

    def test_requires_path(self, runner, mock_config):
        """Test sync fails without a mirror path."""
        result = runner.invoke(main, ["sync"])
        assert result.exit_code == 1
        assert "No mirror path given" in result.output

    def test_missing_mirror_root(self, runner, mock_config, temp_dir):
        """Test a missing mirror root asks for --create-mirror."""
        result = runner.invoke(
            main, ["sync", "--path", str(temp_dir / "nope"), "--skip-listing-update"]
        )
        assert result.exit_code == 1
        assert "--create-mirror" in result.output

    def test_missing_listing(self, runner, mock_config, temp_dir):
        """Test a mirror without a cached listing asks for --create-mirror."""
        result = runner.invoke(main, ["sync", "--path", str(temp_dir)])
        assert result.exit_code == 1
        assert "ls-laR.gz file not found" in result.output
        assert "--create-mirror" in result.output

    def test_contradictory_options(self, runner, mock_config, mirror):
        """Test skipping and forcing a listing update is rejected."""
        result = runner.invoke(
            main,
            [
                "sync",
                "--path",
                str(mirror),
                "--skip-listing-update",
                "--update-listing",
            ],
        )
        assert result.exit_code == 1
        assert "cannot be used together" in result.output

    def test_all_mirrors_excluded(self, runner, mock_config, mirror):
        """Test excluding every mirror is rejected."""
        result = runner.invoke(
            main, ["sync", "--path", str(mirror), "--exclude", "http"]
        )
        assert result.exit_code == 1
        assert "All mirrors are excluded" in result.output

    def test_sync_with_cached_listing(
        self, runner, mock_config, mock_client, mirror
    ):
        """Test a sync run against the cached listing."""
        result = runner.invoke(
            main, ["sync", "--path", str(mirror), "--skip-listing-update"]
        )

        assert result.exit_code == 0, result.output
        assert (mirror / "newstuff" / "patch.wad").stat().st_size == 1024
        assert "Sync Complete" in result.output
        assert "Total files synced from archive: 1" in result.output
        mock_client.close.assert_called_once()

    def test_dry_run(self, runner, mock_config, mock_client, mirror):
        """Test a dry run fetches nothing."""
        result = runner.invoke(main, ["sync", "--path", str(mirror), "--dry-run"])

        assert result.exit_code == 0, result.output
        mock_client.fetch.assert_not_called()
        assert not (mirror / "newstuff").exists()
        assert "Dry Run Complete" in result.output
        assert "Total files to be synced from archive: 1" in result.output

    def test_simple_report(self, runner, mock_config, mock_client, mirror):
        """Test the simple report format is used for records."""
        result = runner.invoke(
            main,
            ["sync", "--path", str(mirror), "--dry-run", "--format", "simple"],
        )
        assert result.exit_code == 0, result.output
        assert "!! newstuff/patch.wad" in result.output

    def test_invalid_format(self, runner, mock_config, mirror):
        """Test an unknown report format is rejected by click."""
        result = runner.invoke(
            main, ["sync", "--path", str(mirror), "--format", "fancy"]
        )
        assert result.exit_code == 2

    def test_update_listing_only(self, runner, mock_config, mock_client, mirror):
        """Test --update-listing refreshes the listing and exits."""
        result = runner.invoke(
            main, ["sync", "--path", str(mirror), "--update-listing"]
        )

        assert result.exit_code == 0, result.output
        assert (mirror / "ls-laR.gz").read_bytes() == b"x" * 1024
        assert not (mirror / "newstuff").exists()
        assert "Updated ls-laR.gz" in result.output
        assert mock_client.fetch.call_args.kwargs["base_url"] == MASTER_MIRROR

    def test_listing_fetch_failure(self, runner, mock_config, mock_client, mirror):
        """Test a failed listing fetch is fatal."""
        mock_client.fetch.side_effect = IdgNetworkError("connection refused")
        result = runner.invoke(main, ["sync", "--path", str(mirror)])

        assert result.exit_code == 1
        assert "Failed to update ls-laR.gz" in result.output

    def test_unreadable_listing(self, runner, mock_config, mock_client, temp_dir):
        """Test a corrupt cached listing is fatal."""
        (temp_dir / "ls-laR.gz").write_bytes(b"not gzip")
        result = runner.invoke(
            main, ["sync", "--path", str(temp_dir), "--skip-listing-update"]
        )
        assert result.exit_code == 1
        assert "Could not read listing" in result.output

    def test_create_mirror(self, runner, mock_config, mock_client, temp_dir):
        """Test --create-mirror creates the root and fetches the listing."""
        root = temp_dir / "new-mirror"
        listing_download = temp_dir / "listing.tmp"
        write_listing(listing_download, LISTING)
        wad_download = temp_dir / "wad.tmp"
        wad_download.write_bytes(b"x" * 1024)
        mock_client.fetch.side_effect = [listing_download, wad_download]

        result = runner.invoke(
            main, ["sync", "--path", str(root), "--create-mirror"]
        )

        assert result.exit_code == 0, result.output
        assert (root / "ls-laR.gz").exists()
        assert (root / "newstuff" / "patch.wad").stat().st_size == 1024

    def test_failed_download_exit_code(
        self, runner, mock_config, mock_client, mirror
    ):
        """Test failed downloads give a non-zero exit status."""
        mock_client.fetch.side_effect = IdgDownloadError("status 404")
        result = runner.invoke(
            main, ["sync", "--path", str(mirror), "--skip-listing-update"]
        )
        assert result.exit_code == 1
        assert "Failed to sync newstuff/patch.wad" in result.output

    def test_unwritable_mirror_root(
        self, runner, mock_config, mock_client, mirror
    ):
        """Test a mirror root that cannot be written to is fatal."""
        with patch("idgsync.cli.os.access", return_value=False):
            result = runner.invoke(
                main, ["sync", "--path", str(mirror), "--skip-listing-update"]
            )

        assert result.exit_code == 1
        assert "is not writable" in result.output
        mock_client.fetch.assert_not_called()

    def test_unwritable_mirror_root_dry_run(
        self, runner, mock_config, mock_client, mirror
    ):
        """Test a dry run does not need write access."""
        with patch("idgsync.cli.os.access", return_value=False):
            result = runner.invoke(main, ["sync", "--path", str(mirror), "--dry-run"])

        assert result.exit_code == 0, result.output

    def test_uses_configured_path(self, runner, mock_config, mock_client, mirror):
        """Test the configured mirror path is used without --path."""
        mock_config.mirror_path = str(mirror)
        result = runner.invoke(main, ["sync", "--skip-listing-update"])
        assert result.exit_code == 0, result.output
        assert (mirror / "newstuff" / "patch.wad").exists()


class TestMirrorsCommand:
    """Tests for the mirrors command."""

    def test_json_output(self, runner, mock_config):
        """Test the mirror list in JSON format."""
        result = runner.invoke(main, ["--json", "mirrors", "--exclude", "gamers"])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.output)
        master = next(row for row in rows if row["master"] == "yes")
        assert master["url"] == MASTER_MIRROR
        gamers = next(row for row in rows if "gamers.org" in row["url"])
        assert gamers["usable"] == "excluded"

    def test_all_excluded(self, runner, mock_config):
        """Test excluding every mirror is an error."""
        result = runner.invoke(main, ["mirrors", "--exclude", "http"])
        assert result.exit_code == 1


class TestInitCommand:
    """Tests for the init command."""

    def test_init_saves_path(self, runner, mock_config, temp_dir):
        """Test the mirror path is stored in the configuration."""
        mock_config.get_config_path.return_value = temp_dir / "config"
        result = runner.invoke(main, ["init", "--path", str(temp_dir)])

        assert result.exit_code == 0, result.output
        mock_config.save_mirror_path.assert_called_once_with(
            str(temp_dir.resolve())
        )
        assert "Initialization Complete" in result.output

    def test_init_save_failure(self, runner, mock_config, temp_dir):
        """Test a failure to write the configuration is reported."""
        mock_config.save_mirror_path.side_effect = PermissionError("denied")
        result = runner.invoke(main, ["init", "--path", str(temp_dir)])
        assert result.exit_code == 1
        assert "Failed to save configuration" in result.output
