import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from triageguy import LOG_FORMAT
from triageguy.config import load_config
from triageguy.errors import PersistenceFailure, TriageError
from triageguy.models.crash_report import CrashReport
from triageguy.pipeline import CrashAnalysis

log = logging.getLogger("triageguy.san")

REPORT_SUFFIX = ".casrep"


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level="NOTSET",
        format=LOG_FORMAT,
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True, width=150), rich_tracebacks=True)],
    )
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)


def report_output_path(output: Path, argv: List[str], date: str) -> Path:
    """
    `output` itself, or `<executable name>_<stem>.casrep` inside it when it is a
    directory. The stem is taken from the first argument that names an existing
    path (usually the crashing input), else the report date is used.
    """
    if not output.is_dir():
        return output
    executable_name = Path(argv[0]).name
    stem = date
    for arg in argv[1:]:
        if Path(arg).exists():
            stem = Path(arg).stem or arg
            break
    return output / f"{executable_name}_{stem}{REPORT_SUFFIX}"


def emit_report(report: CrashReport, argv: List[str], output: Optional[Path] = None, to_stdout: bool = False) -> Optional[Path]:
    report_json = report.to_json()
    if to_stdout:
        print(report_json + "\n")

    if output is None:
        return None
    report_path = report_output_path(output, argv, report.date)
    try:
        report_path.write_text(report_json)
    except OSError as e:
        raise PersistenceFailure(f"Couldn't write report to {report_path}: {e}") from e
    log.info("Report written to %s", report_path)
    return report_path


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='triageguy-san',
        description='Create a crash report from a sanitizer (or signal) crash of a target program',
    )
    parser.add_argument('-o', '--output', type=Path, help='Path to save the report. A directory gets a generated file name', default=None)
    parser.add_argument('--stdout', action='store_true', help='Print the report to stdout')
    parser.add_argument('--stdin', type=Path, help='File to use as the target\'s stdin', default=None)
    parser.add_argument('--config', type=Path, help='YAML config file (default: $TRIAGEGUY_CONFIG)', default=None)
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('ARGS', nargs='+', help='Target program and its arguments, after --')
    parsed = parser.parse_args(args)

    if parsed.ARGS and parsed.ARGS[0] == '--':
        parsed.ARGS = parsed.ARGS[1:]
    if not parsed.ARGS:
        parser.error('the target program is missing')
    if parsed.output is None and not parsed.stdout:
        parser.error('one of -o/--output or --stdout is required')
    if parsed.stdin is not None and not parsed.stdin.is_file():
        parser.error(f'stdin file {parsed.stdin} does not exist')
    return parsed


def main(args: Optional[List[str]] = None):
    parsed = parse_args(args)
    setup_logging(parsed.verbose)

    try:
        config = load_config(parsed.config)
        report = CrashAnalysis(config).run(parsed.ARGS, parsed.stdin)
        emit_report(report, parsed.ARGS, parsed.output, parsed.stdout)
    except TriageError as e:
        log.error("%s", e)
        sys.exit(1)


if __name__ == '__main__':
    main()
