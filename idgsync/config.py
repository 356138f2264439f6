"""User configuration for idgsync.

Values are resolved from environment variables first, then from a simple
``key=value`` file stored at ``~/.config/idgsync/config``.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PATH_KEY = "IDGSYNC_PATH"
TEMPDIR_KEY = "IDGSYNC_TEMPDIR"
EXCLUDE_KEY = "IDGSYNC_EXCLUDE"
URL_KEY = "IDGSYNC_URL"


class Config:
    """Resolves default settings from the environment and the config file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/idgsync
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "idgsync"
        self.config_dir = config_dir
        self._file_values: Optional[dict[str, str]] = None

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_dir / "config"

    def _load_file(self) -> dict[str, str]:
        if self._file_values is not None:
            return self._file_values

        values: dict[str, str] = {}
        config_path = self.get_config_path()
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    for line in f:
                        line = line.strip()
                        if not line or line.startswith("#") or "=" not in line:
                            continue
                        key, value = line.split("=", 1)
                        values[key.strip()] = value.strip()
            except OSError as e:
                logger.warning(f"Failed to read config file {config_path}: {e}")
        self._file_values = values
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._load_file().get(key) or None

    @property
    def mirror_path(self) -> Optional[str]:
        """Default local mirror root."""
        return self._get(PATH_KEY)

    @property
    def mirror_url(self) -> Optional[str]:
        """Explicit mirror URL to use instead of a random mirror."""
        return self._get(URL_KEY)

    @property
    def exclude_mirrors(self) -> list[str]:
        """Mirror URL fragments that should never be used."""
        value = self._get(EXCLUDE_KEY)
        if not value:
            return []
        return [part.strip() for part in value.split(",") if part.strip()]

    @property
    def tempdir(self) -> str:
        """Directory used for in-flight downloads.

        Falls back through TEMP, TMP and TMPDIR before the platform default.
        """
        configured = self._get(TEMPDIR_KEY)
        if configured:
            return configured
        for env_var in ("TEMP", "TMP", "TMPDIR"):
            value = os.environ.get(env_var)
            if value:
                logger.debug(f"Using {env_var} for tempdir")
                return value
        return tempfile.gettempdir()

    def save_mirror_path(self, path: str) -> None:
        """Persist the default mirror root to the config file."""
        values = dict(self._load_file())
        values[PATH_KEY] = path

        self.config_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.get_config_path()
        with open(config_path, "w", encoding="utf-8") as f:
            for key, value in sorted(values.items()):
                f.write(f"{key}={value}\n")
        self._file_values = values
        logger.debug(f"Saved mirror path to {config_path}")


config = Config()
