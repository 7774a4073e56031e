import os
import tempfile
import tomllib
import unittest
from pathlib import Path
from unittest import mock

from ffextract import ExtractOptions, ExtractSettings
from ffextract.settings import CONFIG_ENVIRONMENT_VARIABLE, SETTING_LOGGING_PATH, SETTING_STRIP_LEVELS


class ExtractSettingsTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.settings_file = Path(self._tmpdir.name) / 'settings.toml'
        self.settings_file.write_text(
            'reference_directory = "/mnt/ref"\n'
            'strip_levels = 2\n'
            '\n'
            '[logging]\n'
            'path = "/var/log/ffextract.log"\n')

    def tearDown(self):
        self._tmpdir.cleanup()

    def test_get(self):
        settings = ExtractSettings(self.settings_file)
        self.assertEqual(2, settings.get(SETTING_STRIP_LEVELS, 0))
        self.assertEqual('/var/log/ffextract.log', settings.get(SETTING_LOGGING_PATH))
        self.assertEqual('fallback', settings.get('logging.path.deeper', 'fallback'))
        self.assertIsNone(settings.get('nonexistent'))

    def test_no_settings_file(self):
        settings = ExtractSettings()
        self.assertEqual(0, settings.get(SETTING_STRIP_LEVELS, 0))
        self.assertIsNone(settings.settings_file)

    def test_locate_from_environment(self):
        with mock.patch.dict(os.environ, {CONFIG_ENVIRONMENT_VARIABLE: str(self.settings_file)}):
            settings = ExtractSettings.locate()
        self.assertEqual(self.settings_file, settings.settings_file)

    def test_explicit_file_wins_over_environment(self):
        with mock.patch.dict(os.environ, {CONFIG_ENVIRONMENT_VARIABLE: '/nonexistent.toml'}):
            settings = ExtractSettings.locate(self.settings_file)
        self.assertEqual(2, settings.get(SETTING_STRIP_LEVELS))

    def test_locate_without_configuration(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(ExtractSettings.locate().settings_file)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ExtractSettings(Path(self._tmpdir.name) / 'missing.toml')

    def test_invalid_toml(self):
        self.settings_file.write_text('strip_levels = = 1\n')
        with self.assertRaises(tomllib.TOMLDecodeError):
            ExtractSettings(self.settings_file)


class ExtractOptionsTest(unittest.TestCase):
    def _settings(self, text: str) -> ExtractSettings:
        with tempfile.NamedTemporaryFile('w', suffix='.toml', delete=False) as f:
            f.write(text)
        self.addCleanup(os.unlink, f.name)
        return ExtractSettings(Path(f.name))

    def test_defaults(self):
        options = ExtractOptions.from_settings(ExtractSettings())
        self.assertIsNone(options.reference_directory)
        self.assertEqual(0, options.strip_levels)
        self.assertFalse(options.preserve_attributes)
        self.assertFalse(options.keep_going)
        self.assertEqual(65536, options.chunk_size)

    def test_settings_values(self):
        options = ExtractOptions.from_settings(self._settings(
            'reference_directory = "/mnt/ref"\nstrip_levels = 1\npreserve_attributes = true\nkeep_going = true\n'))
        self.assertEqual(Path('/mnt/ref'), options.reference_directory)
        self.assertEqual(1, options.strip_levels)
        self.assertTrue(options.preserve_attributes)
        self.assertTrue(options.keep_going)

    def test_overrides_win_and_none_is_ignored(self):
        options = ExtractOptions.from_settings(
            self._settings('strip_levels = 1\npreserve_attributes = true\n'),
            strip_levels=3, preserve_attributes=None, reference_directory=Path('/other'))
        self.assertEqual(3, options.strip_levels)
        self.assertTrue(options.preserve_attributes)
        self.assertEqual(Path('/other'), options.reference_directory)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            ExtractOptions.from_settings(ExtractSettings(), strip_levels=-1)
        with self.assertRaises(ValueError):
            ExtractOptions.from_settings(ExtractSettings(), chunk_size=0)
        with self.assertRaises(ValueError):
            ExtractOptions.from_settings(self._settings('strip_levels = "two"\n'))


if __name__ == '__main__':
    unittest.main()
