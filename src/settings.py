import json
from pathlib import Path
from typing import Any, Dict

from catalog import ALL_REPOS
from pacman_conf import PACMAN_CONF_PATH


class Settings:
    """Central settings management with sensible defaults."""

    DEFAULTS = {
        # pacman
        "pacman_conf_path": PACMAN_CONF_PATH,
        "default_repo": ALL_REPOS,  # A repository name or "*all*"

        # Catalog building
        "temp_root": "",            # Empty: <system temp dir>/karun
        "extraction_workers": 1,
        "strict_parsing": False,
    }

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or Path.home() / ".config" / "karun"
        self.config_file = self.config_dir / "settings.json"
        self._data: Dict[str, Any] = {}
        self.load()

    def load(self):
        """Load settings from file and fall back to defaults."""
        self._data = dict(self.DEFAULTS)

        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    user_data = json.load(f)
                    if isinstance(user_data, dict):
                        self._data.update(user_data)
            except (OSError, ValueError) as e:
                print(f"Warning: Could not load settings: {e}")

    def save(self):
        """Persist the current settings."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            print(f"Error while saving settings: {e}")

    def get(self, key: str, default=None) -> Any:
        """Retrieve a setting value."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        """Store a setting value."""
        self._data[key] = value

    def reset_to_defaults(self):
        """Reset all settings."""
        self._data = dict(self.DEFAULTS)
        self.save()

    # ---- Convenience methods ----

    def get_temp_root(self) -> Path | None:
        """Return the workspace root, or None for the default location."""
        root = str(self.get("temp_root", "") or "").strip()
        return Path(root).expanduser() if root else None

    def get_extraction_workers(self) -> int:
        try:
            return max(1, int(self.get("extraction_workers", 1)))
        except (TypeError, ValueError):
            return 1


# Global instance
settings = Settings()
