import logging
import re
from typing import List, Optional

from triageguy.classification import derive, find_by_name
from triageguy.errors import StackTraceEndNotFound, StackTraceNotFound
from triageguy.models.execution_class import AccessEnum, ExecutionClass

log = logging.getLogger(__name__)

SUMMARY = re.compile(r'SUMMARY: *(AddressSanitizer|libFuzzer): (\S+)')
ACCESS = re.compile(r'(READ|WRITE|ACCESS)')
FRAME_ZERO_MARKER = ' #0 '


def parse_access_qualifier(line: str) -> AccessEnum:
    """`READ of size 4 ...` / `The signal is caused by a WRITE memory access.`; ACCESS carries no direction."""
    match = ACCESS.search(line)
    if match is None or match.group(1) == 'ACCESS':
        return AccessEnum.UNDEFINED
    return AccessEnum(match.group(1))


def classify_sanitizer_report(report: List[str]) -> Optional[ExecutionClass]:
    """
    Classify a sanitizer report excerpt.

    LeakSanitizer reports are always `memory-leaks`. Otherwise the check name is
    taken from the first SUMMARY line. libFuzzer checks are derived from the name
    alone; AddressSanitizer checks also use the access direction from the second
    report line. Returns None if there is no SUMMARY line, and raises ClassNotFound
    if the check name has no class.
    """
    if 'LeakSanitizer' in report[0]:
        return find_by_name('memory-leaks')

    match = next((m for m in map(SUMMARY.search, report) if m), None)
    if match is None:
        log.warning("Sanitizer report has no SUMMARY line, leaving it unclassified")
        return None

    tool, check = match.groups()
    if tool == 'libFuzzer':
        return derive(check)

    access = parse_access_qualifier(report[1]) if len(report) > 1 else AccessEnum.UNDEFINED
    log.debug("AddressSanitizer check %s, access=%s", check, access.value)
    return derive(check, access)


def extract_sanitizer_stacktrace(report: List[str]) -> List[str]:
    """The first stack trace of the report: from the `#0` frame up to the next empty line."""
    first = next((i for i, line in enumerate(report) if FRAME_ZERO_MARKER in line), None)
    if first is None:
        raise StackTraceNotFound("Couldn't find stack trace in sanitizer's report")

    last = next((i for i in range(first, len(report)) if not report[i]), None)
    if last is None:
        raise StackTraceEndNotFound("Couldn't find stack trace end in sanitizer's report")

    return [line.strip() for line in report[first:last]]
