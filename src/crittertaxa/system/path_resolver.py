import os
from pathlib import Path


class PathResolver:
    """Central authority for all file path resolution in crittertaxa.

    Uses environment variables for configuration with sensible defaults.
    """

    def __init__(self) -> None:
        """Initialize PathResolver with environment-based configuration."""
        default_data = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))
        self.data_dir = Path(os.getenv("CRITTERTAXA_DATA", default_data / "crittertaxa"))

    def get_config_path(self) -> Path:
        """Get the path to the main configuration file.

        Checks CRITTERTAXA_CONFIG environment variable first, then falls back to default.
        """
        config_path = os.getenv("CRITTERTAXA_CONFIG")
        if config_path:
            return Path(config_path)

        return self.data_dir / "config" / "crittertaxa.yaml"

    def get_data_dir(self) -> Path:
        """Get the data directory path."""
        return self.data_dir

    def get_database_dir(self) -> Path:
        """Get the directory for database files."""
        return self.data_dir / "database"

    def get_database_path(self) -> Path:
        """Get the path to the SQLite cache database."""
        return self.data_dir / "database" / "crittertaxa.db"
