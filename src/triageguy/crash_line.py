"""
Crash line resolution.

The crash line is the innermost stack frame that belongs to the target itself:
frames of the sanitizer runtime, libc and the fuzzing driver are skipped. A frame
with a source location wins over one that only names a module and offset.

Both stack trace shapes are understood:

    #0 0x4f5c1a in parse_header /src/lib/parse.c:120:9
    #1 0x7f3a1c0 in __libc_start_main (/lib/x86_64-linux-gnu/libc.so.6+0x21c86)
    #0  0x0000555555555149 in main () at test.c:5
    #2  0x00007ffff7c29e40 in __libc_start_main () from /lib/x86_64-linux-gnu/libc.so.6
"""
import logging
import re
from pathlib import Path
from typing import List, Optional, Pattern, Tuple

from pydantic import Field, ValidationError

from triageguy.config import TriageguyConfig
from triageguy.errors import CrashLineUnresolved
from triageguy.models.base import TriageguyBaseModel
from triageguy.models.crash_report import CrashReport
from triageguy.models.symbols import BinaryLocation, CrashLine, SourceLocation
from triageguy.utils import triageguy_should_fail_on_error

log = logging.getLogger(__name__)

FRAME_HEAD = re.compile(r'^#(\d+)\s+(?:(0x[0-9a-fA-F]+)\s+)?(?:in\s+)?(.*)$')
FUNCTION = re.compile(r'^([^\s(]+)')
GDB_SOURCE = re.compile(r'\sat\s+(\S+):(\d+)\s*$')
GDB_MODULE = re.compile(r'\sfrom\s+(\S+)\s*$')
SANITIZER_MODULE = re.compile(r'\(([^()\s]+)\+(0x[0-9a-fA-F]+)\)')
SANITIZER_SOURCE = re.compile(r'(?:^|\s)(\S+?):(\d+)(?::(\d+))?(?:\s+\(BuildId: [0-9a-fA-F]+\))?\s*$')
MAPPING = re.compile(r'^\s*(0x[0-9a-fA-F]+)\s+(0x[0-9a-fA-F]+)\s+(0x[0-9a-fA-F]+)\s+(0x[0-9a-fA-F]+)\s+(?:[rwxsp-]{4}\s+)?(\S.*)$')

UNKNOWN_FILES = {'??', '<unknown>'}


class StackFrame(TriageguyBaseModel):
    index: int
    address: Optional[int] = None
    function_name: Optional[str] = None
    source: Optional[SourceLocation] = None
    module: Optional[str] = Field(default=None, description="Module path, when the frame names one")
    offset: Optional[int] = Field(default=None, description="Offset inside `module`, when the frame carries one")


class Mapping(TriageguyBaseModel):
    start: int
    end: int
    objfile: str


def parse_mappings(proc_maps: List[str]) -> List[Mapping]:
    mappings = []
    for line in proc_maps:
        match = MAPPING.match(line)
        if match is None:
            continue
        start, end, _size, _offset, objfile = match.groups()
        mappings.append(Mapping(start=int(start, 16), end=int(end, 16), objfile=objfile.strip()))
    return mappings


def _source_location(path: str, line: str, column: Optional[str], function_name: Optional[str]) -> Optional[SourceLocation]:
    if path in UNKNOWN_FILES or int(line) <= 0:
        return None
    return SourceLocation(
        full_file_path=Path(path),
        line_number=int(line),
        column=int(column) if column else None,
        function_name=function_name,
    )


def parse_frame(line: str) -> Optional[StackFrame]:
    """Parse one stack trace line. Returns None for lines that are not frames."""
    head = FRAME_HEAD.match(line.strip())
    if head is None:
        return None
    index, address, rest = head.groups()

    function = FUNCTION.match(rest)
    function_name = function.group(1) if function else None
    if function_name in UNKNOWN_FILES:
        function_name = None
    frame = StackFrame(
        index=int(index),
        address=int(address, 16) if address else None,
        function_name=function_name,
    )

    if match := GDB_SOURCE.search(rest):
        frame.source = _source_location(match.group(1), match.group(2), None, function_name)
    elif match := GDB_MODULE.search(rest):
        frame.module = match.group(1)
    elif match := SANITIZER_MODULE.search(rest):
        frame.module = match.group(1)
        frame.offset = int(match.group(2), 16)
    elif match := SANITIZER_SOURCE.search(rest):
        frame.source = _source_location(match.group(1), match.group(2), match.group(3), function_name)
    return frame


def locate_in_mappings(address: int, mappings: List[Mapping], module: Optional[str] = None) -> Optional[Tuple[str, int]]:
    """Module and offset from the module's load base for an address inside the memory map."""
    for mapping in mappings:
        if not mapping.start <= address < mapping.end:
            continue
        if module is not None and Path(mapping.objfile).name != Path(module).name:
            continue
        base = min(m.start for m in mappings if m.objfile == mapping.objfile)
        return mapping.objfile, address - base
    return None


def _binary_location(frame: StackFrame, mappings: List[Mapping]) -> Optional[BinaryLocation]:
    if frame.module is not None and frame.offset is not None:
        module, offset = frame.module, frame.offset
    elif frame.address is not None:
        located = locate_in_mappings(frame.address, mappings, frame.module)
        if located is None:
            return None
        module, offset = located
    else:
        return None
    return BinaryLocation(full_binary_path=Path(module), offset=offset, function_name=frame.function_name)


def _matches(patterns: List[Pattern], text: Optional[str]) -> bool:
    return text is not None and any(p.search(text) for p in patterns)


def _is_runtime_frame(frame: StackFrame, function_patterns: List[Pattern], path_patterns: List[Pattern]) -> bool:
    if _matches(function_patterns, frame.function_name):
        return True
    if frame.source is not None and _matches(path_patterns, str(frame.source.full_file_path)):
        return True
    return _matches(path_patterns, frame.module)


def resolve_crash_line(report: CrashReport, config: Optional[TriageguyConfig] = None) -> CrashLine:
    config = config or TriageguyConfig()
    function_patterns = [re.compile(p) for p in config.ignored_function_patterns]
    path_patterns = [re.compile(p) for p in config.ignored_path_patterns]
    mappings = parse_mappings(report.proc_maps)

    binary_location: Optional[BinaryLocation] = None
    for line in report.stacktrace:
        try:
            frame = parse_frame(line)
        except (ValidationError, ValueError) as e:
            if triageguy_should_fail_on_error():
                raise CrashLineUnresolved(f"Malformed stack frame {line!r}: {e}") from e
            log.warning("Skipping malformed stack frame %r: %s", line, e)
            continue
        if frame is None:
            continue
        if _is_runtime_frame(frame, function_patterns, path_patterns):
            log.debug("Skipping runtime frame %s", line)
            continue

        if frame.source is not None:
            return frame.source
        if binary_location is None:
            location = _binary_location(frame, mappings)
            # frames without a module name are only placed in libc once looked up in the memory map
            if location is not None and _matches(path_patterns, str(location.full_binary_path)):
                log.debug("Skipping runtime frame %s", line)
                continue
            binary_location = location

    if binary_location is not None:
        return binary_location
    raise CrashLineUnresolved("No stack frame has a source or module location")


def fetch_source(location: SourceLocation, context_lines: int = 5) -> Optional[List[str]]:
    """
    The lines around the crash line, the crash line itself marked with `--->`:

        ---> 120   if (hdr->len > MAX)
    """
    try:
        text = location.full_file_path.read_text(errors='replace')
    except OSError as e:
        log.info("Source file %s is not available: %s", location.full_file_path, e)
        return None

    lines = text.splitlines()
    if location.line_number > len(lines):
        log.warning("%s has no line %d", location.full_file_path, location.line_number)
        return None

    first = max(1, location.line_number - context_lines)
    last = min(len(lines), location.line_number + context_lines)
    return [
        f"{'--->' if number == location.line_number else '    '}{number:<6}{lines[number - 1]}"
        for number in range(first, last + 1)
    ]
