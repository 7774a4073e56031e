import os
import tomllib
from pathlib import Path


# Settings key constants
SETTING_REFERENCE_DIRECTORY = 'reference_directory'
SETTING_STRIP_LEVELS = 'strip_levels'
SETTING_PRESERVE_ATTRIBUTES = 'preserve_attributes'
SETTING_CHUNK_SIZE = 'chunk_size'
SETTING_KEEP_GOING = 'keep_going'
SETTING_LOGGING_PATH = 'logging.path'
SETTING_LOGGING_LEVEL = 'logging.level'

CONFIG_ENVIRONMENT_VARIABLE = 'FFEXTRACT_CONFIG'


class ExtractSettings:
    """Read-only access to a TOML settings file.

    The class does not interpret the settings; consumers pick the keys they need and supply
    defaults. Without a settings file every get() returns its default.

    Example:
        settings = ExtractSettings(Path('~/.config/ffextract.toml').expanduser())
        levels = settings.get(SETTING_STRIP_LEVELS, 0)
        log_path = settings.get(SETTING_LOGGING_PATH)
    """

    def __init__(self, settings_file: Path | None = None):
        """Load settings.

        Args:
            settings_file: TOML file to load, or None for no settings

        Raises:
            FileNotFoundError: settings_file is given but does not exist
            tomllib.TOMLDecodeError: settings_file is not valid TOML
        """
        self._settings_file = settings_file
        self._settings = {}

        if settings_file is not None:
            with open(settings_file, 'rb') as f:
                self._settings = tomllib.load(f)

    @classmethod
    def locate(cls, settings_file: str | os.PathLike | None = None) -> 'ExtractSettings':
        """Load the explicitly given settings file, or the one named by FFEXTRACT_CONFIG, or none."""
        if settings_file is None:
            settings_file = os.environ.get(CONFIG_ENVIRONMENT_VARIABLE) or None
        return cls(None if settings_file is None else Path(settings_file))

    @property
    def settings_file(self) -> Path | None:
        return self._settings_file

    def get(self, key: str, default=None):
        """Get a setting value by key with optional default.

        Dot notation accesses nested tables: 'logging.path' reads settings['logging']['path'].
        Returns the default when the key path does not exist or an intermediate value is not a table.

        Examples:
            >>> settings.get(SETTING_STRIP_LEVELS, 0)
            1
            >>> settings.get('nonexistent.key', 'fallback')
            'fallback'
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value
