import logging
import re
from typing import List, Optional

log = logging.getLogger(__name__)

SANITIZER_REPORT_START = re.compile(r'==\d{2,}==\s*ERROR: (LeakSanitizer|AddressSanitizer|libFuzzer):')


def split_lines(text: str) -> List[str]:
    return text.split('\n')


def find_sanitizer_report(lines: List[str]) -> Optional[List[str]]:
    """
    Locate the sanitizer report in captured stderr lines.

    The report starts at the first `==PID==ERROR: <tool>:` line and runs up to and
    including the last non-empty line of the output. Returns None if no report
    start is present, in which case the caller falls back to the signal path.
    """
    start = next((i for i, line in enumerate(lines) if SANITIZER_REPORT_START.search(line)), None)
    if start is None:
        log.debug("No sanitizer report start found in %d lines", len(lines))
        return None
    end = max(i for i, line in enumerate(lines) if line)
    return lines[start:end + 1]


from .asan import classify_sanitizer_report, extract_sanitizer_stacktrace, parse_access_qualifier
from .gdb import extract_gdb_stacktrace, extract_gdb_mappings, parse_fault_access
