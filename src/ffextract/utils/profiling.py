"""Optional cProfile instrumentation of the command-line entry point.

When the FFEXTRACT_PROFILE environment variable names a directory, the decorated function
runs under cProfile and its statistics are written there as main_<timestamp-ms>_<pid>.prof.
"""
import cProfile
import functools
import os
import time
from pathlib import Path
from typing import Callable, TypeVar, ParamSpec

P = ParamSpec('P')
T = TypeVar('T')

PROFILE_ENVIRONMENT_VARIABLE = 'FFEXTRACT_PROFILE'


def get_profile_dir() -> Path | None:
    profile_path = os.environ.get(PROFILE_ENVIRONMENT_VARIABLE)
    return Path(profile_path) if profile_path else None


def generate_profile_filename(prefix: str = "main") -> str:
    """Generate a profile file name like "main_1730332456789_54321.prof"."""
    return f"{prefix}_{int(time.time() * 1000)}_{os.getpid()}.prof"


def profile_main(func: Callable[P, T]) -> Callable[P, T]:
    """Decorator profiling the wrapped entry point when FFEXTRACT_PROFILE is set.

    Statistics are dumped even when the function raises or exits through SystemExit.
    """
    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        profile_dir = get_profile_dir()
        if profile_dir is None:
            return func(*args, **kwargs)

        profile_dir.mkdir(parents=True, exist_ok=True)
        profile_file = profile_dir / generate_profile_filename()

        profiler = cProfile.Profile()
        try:
            profiler.enable()
            return func(*args, **kwargs)
        finally:
            profiler.disable()
            profiler.dump_stats(str(profile_file))

    return wrapper
