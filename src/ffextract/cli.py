import argparse
import logging
import sys
import textwrap
import tomllib
from functools import wraps
from pathlib import Path

from . import Extractor, ExtractOptions, ExtractSettings, RunResult
from .extractor import LOG_FORMAT
from .utils.profiling import profile_main

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def needs_extractor(func):
    """Decorator for commands that run the extraction pipeline.

    The decorated function receives (extractor, args). The wrapper takes (settings, args), builds
    ExtractOptions from the settings file and the command line, and configures logging from the
    settings file unless --log-file was given.
    """
    @wraps(func)
    def wrapper(settings: ExtractSettings, args):
        try:
            options = ExtractOptions.from_settings(
                settings,
                reference_directory=_optional_path(getattr(args, 'reference_directory', None)),
                strip_levels=getattr(args, 'strip_levels', None),
                preserve_attributes=getattr(args, 'preserve', None),
                verbose=args.verbose,
                chunk_size=getattr(args, 'chunk_size', None),
                keep_going=getattr(args, 'keep_going', None),
                destination=_optional_path(getattr(args, 'directory', None)),
                report_directory=_optional_path(getattr(args, 'report', None)))
        except ValueError as e:
            print(f"ffextract: {e}", file=sys.stderr)
            return EXIT_USAGE

        extractor = Extractor(options, settings)
        if not args.log_file:
            extractor.configure_logging_from_settings()
        return func(extractor, args)
    return wrapper


def no_extractor(func):
    """Decorator for commands that only read existing reports.

    The decorated function receives (args).
    """
    @wraps(func)
    def wrapper(settings: ExtractSettings, args):
        return func(args)
    return wrapper


@profile_main
def ffextract_main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog='ffextract',
        description='Flash-friendly tar extractor: files whose content is identical to a file in a reference '
                    'directory are hardlinked instead of being written again.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              ffextract extract -f rootfs.tar -r /mnt/current-rootfs
              zcat rootfs.tar.gz | ffextract extract -r /mnt/current-rootfs -s 1
              ffextract list -f rootfs.tar
            ''').strip()
    )
    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Path to a TOML settings file. If not provided, uses the FFEXTRACT_CONFIG environment variable or no '
             'settings file.')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file for operation logging. If not provided, uses logging.path from the settings file or '
             'no logging.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when --log-file is provided.')
    subparsers = parser.add_subparsers(
        dest='command',
        title='Commands',
        description='Available commands',
        help='Use "ffextract COMMAND --help" for command-specific help',
        required=True
    )

    parser_extract = subparsers.add_parser(
        'extract',
        help='Extract an archive, linking files identical to reference files',
        description='Extracts a tar stream into the current directory. Each regular file is compared against the '
                    'file at the same relative path in the reference directory while it is read; identical files '
                    'are hardlinked, files that differ reuse the identical leading part of the reference file.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              # Archive entries look like rootfs/etc/passwd, reference holds etc/passwd
              ffextract extract -f update.tar -r /mnt/rootfs -s 1

              # Keep extracting after a failing entry and record what happened
              ffextract extract -f update.tar -r /mnt/rootfs --keep-going --report update.report
            ''').strip())
    _add_archive_argument(parser_extract)
    parser_extract.add_argument(
        '-r', '--reference-directory',
        metavar='DIR',
        help='Link to files in this directory if they are equal')
    parser_extract.add_argument(
        '-s', '--strip-prefix',
        dest='strip_levels',
        type=int,
        metavar='LEVELS',
        help='Strip the given number of leading directories from entry paths before the reference lookup '
             '(default: 0)')
    parser_extract.add_argument(
        '-p', '--preserve',
        action='store_true',
        default=None,
        help='Preserve permissions, ownership and file flags in addition to modification times')
    parser_extract.add_argument(
        '-C', '--directory',
        metavar='DIR',
        help='Extract into DIR instead of the current directory')
    parser_extract.add_argument(
        '--chunk-size',
        type=int,
        metavar='BYTES',
        help='Number of bytes compared per step (default: 65536)')
    parser_extract.add_argument(
        '--keep-going',
        action='store_true',
        default=None,
        help='Continue with the next entry when an entry fails (default: abort the run)')
    parser_extract.add_argument(
        '--report',
        metavar='DIR',
        help='Write an extraction report (manifest.json and a database of per-entry outcomes) to DIR')
    _add_verbose_argument(parser_extract, 'Show progress during extraction')
    parser_extract.set_defaults(method=_extract)

    parser_list = subparsers.add_parser(
        'list',
        help='List the entries of an archive without extracting',
        description='Reads the whole archive and prints the path of every entry. Nothing is written.')
    _add_archive_argument(parser_list)
    _add_verbose_argument(parser_list, 'Show type, permissions, owner, size and time of each entry')
    parser_list.set_defaults(method=_list)

    parser_inspect = subparsers.add_parser(
        'inspect',
        help='Show an extraction report',
        description='Displays the manifest of an extraction report and the outcome recorded for each entry.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              ffextract inspect update.report
              ffextract inspect update.report rootfs/etc/passwd
            ''').strip())
    parser_inspect.add_argument(
        'report_directory',
        metavar='REPORT',
        help='Report directory written by "ffextract extract --report"')
    parser_inspect.add_argument(
        'paths',
        nargs='*',
        metavar='PATH',
        help='Archive paths to show (default: all entries)')
    parser_inspect.set_defaults(method=_inspect)

    args = parser.parse_args(argv)

    # Configure logging from CLI argument if provided
    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=getattr(logging, args.log_level or 'INFO'),
            format=LOG_FORMAT
        )

    try:
        settings = ExtractSettings.locate(args.config)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"ffextract: cannot load settings: {e}", file=sys.stderr)
        sys.exit(EXIT_USAGE)

    sys.exit(args.method(settings, args))


def _add_archive_argument(subparser: argparse.ArgumentParser):
    subparser.add_argument(
        '-f', '--file',
        metavar='ARCHIVE',
        default='-',
        help='Input archive, "-" for standard input (default: standard input)')


def _add_verbose_argument(subparser: argparse.ArgumentParser, text: str):
    subparser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help=text)


def _optional_path(value: str | None) -> Path | None:
    return None if value is None else Path(value)


def _report_failures(result: RunResult):
    for failure in result.failures:
        print(f"ffextract: {failure}", file=sys.stderr)
    if result.failures:
        print("There were errors.", file=sys.stderr)


@needs_extractor
def _extract(extractor: Extractor, args):
    result = extractor.extract(args.file, sys.stdout)
    _report_failures(result)
    print(result.stats.summary())
    return EXIT_SUCCESS if result.succeeded else EXIT_FAILURE


@needs_extractor
def _list(extractor: Extractor, args):
    result = extractor.list(args.file, sys.stdout)
    _report_failures(result)
    return EXIT_SUCCESS if result.succeeded else EXIT_FAILURE


@no_extractor
def _inspect(args):
    from .commands.inspect import do_inspect

    try:
        found_all = do_inspect(Path(args.report_directory), args.paths, sys.stdout)
    except FileNotFoundError as e:
        print(f"ffextract: not a report: {e}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_SUCCESS if found_all else EXIT_FAILURE


if __name__ == '__main__':
    ffextract_main()
