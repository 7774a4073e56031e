import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ffextract.utils.profiling import (
    PROFILE_ENVIRONMENT_VARIABLE, generate_profile_filename, get_profile_dir, profile_main)


class ProfilingTest(unittest.TestCase):
    def setUp(self):
        environment = mock.patch.dict(os.environ)
        environment.start()
        self.addCleanup(environment.stop)
        os.environ.pop(PROFILE_ENVIRONMENT_VARIABLE, None)

    def test_get_profile_dir_when_not_set(self):
        self.assertIsNone(get_profile_dir())

    def test_get_profile_dir_when_set(self):
        os.environ[PROFILE_ENVIRONMENT_VARIABLE] = '/tmp/test_profile'
        self.assertEqual(Path('/tmp/test_profile'), get_profile_dir())

    def test_generate_profile_filename_format(self):
        filename = generate_profile_filename()
        self.assertTrue(filename.endswith('.prof'))
        prefix, timestamp, pid = filename[:-len('.prof')].split('_')
        self.assertEqual('main', prefix)
        self.assertTrue(timestamp.isdigit())
        self.assertEqual(str(os.getpid()), pid)

    def test_profile_main_without_env_var(self):
        @profile_main
        def main(value):
            return value * 2

        self.assertEqual(42, main(21))

    def test_profile_main_writes_profile(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            profile_dir = Path(tmpdir) / 'profiles'
            os.environ[PROFILE_ENVIRONMENT_VARIABLE] = str(profile_dir)

            @profile_main
            def main():
                return sum(range(1000))

            self.assertEqual(499500, main())
            profiles = list(profile_dir.glob('main_*.prof'))
            self.assertEqual(1, len(profiles))
            self.assertGreater(profiles[0].stat().st_size, 0)

    def test_profile_main_writes_profile_on_exit(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            os.environ[PROFILE_ENVIRONMENT_VARIABLE] = tmpdir

            @profile_main
            def main():
                raise SystemExit(3)

            with self.assertRaises(SystemExit):
                main()
            self.assertEqual(1, len(list(Path(tmpdir).glob('*.prof'))))


if __name__ == '__main__':
    unittest.main()
