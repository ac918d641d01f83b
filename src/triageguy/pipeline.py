import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from triageguy.classification import classify_signal
from triageguy.config import TriageguyConfig
from triageguy.crash_line import fetch_source, resolve_crash_line
from triageguy.debuggers import DEFAULT_COMMANDS, Debugger, GDBDebugger
from triageguy.errors import ClassNotFound, CrashLineUnresolved, ExternalToolFailure, NoCrashDetected
from triageguy.models.crash_report import CrashReport
from triageguy.models.execution_class import ExecutionClass
from triageguy.models.symbols import SourceLocation
from triageguy.runner import TargetRunner
from triageguy.sanitizer_parsers import (
    classify_sanitizer_report,
    extract_gdb_mappings,
    extract_gdb_stacktrace,
    extract_sanitizer_stacktrace,
    find_sanitizer_report,
    parse_fault_access,
    split_lines,
)
from triageguy.utils import timed_context

log = logging.getLogger(__name__)


class PipelineState(Enum):
    INIT = "init"
    CLASSIFYING = "classifying"
    TRACE_EXTRACTED = "trace_extracted"
    LINE_RESOLVED = "line_resolved"
    FINALIZED = "finalized"


class CrashAnalysis:
    """
    Builds one CrashReport out of a crashed run of a target.

    The report is filled strictly in order: identity and environment, execution
    class, stack trace, crash line and source. Any failure before the crash line
    aborts the analysis; the crash line itself is best-effort.
    """

    def __init__(
        self,
        config: Optional[TriageguyConfig] = None,
        debugger: Optional[Debugger] = None,
        runner: Optional[TargetRunner] = None,
    ):
        self.config = config or TriageguyConfig()
        self.debugger = debugger or GDBDebugger(self.config)
        self.runner = runner or TargetRunner(self.config)
        self.state = PipelineState.INIT

    def _transition(self, state: PipelineState):
        log.debug("Pipeline state %s -> %s", self.state.name, state.name)
        self.state = state

    def run(self, argv: List[str], stdin_file: Optional[Union[str, Path]] = None) -> CrashReport:
        """Run the target with its sanitizers and analyze the outcome."""
        with timed_context(log, f"Running {argv[0]}"):
            result = self.runner.run(argv, stdin_file)
        return self.analyze(argv, result.stderr_text, result.signal, stdin_file)

    def analyze(
        self,
        argv: List[str],
        stderr: str,
        signal: Optional[int],
        stdin_file: Optional[Union[str, Path]] = None,
        collect_os_info: bool = True,
    ) -> CrashReport:
        self.state = PipelineState.INIT
        report = CrashReport()
        report.add_identity(argv, stdin_file)
        if collect_os_info:
            report.add_os_info()

        self._transition(PipelineState.CLASSIFYING)
        excerpt = find_sanitizer_report(split_lines(stderr))
        if excerpt is not None:
            log.info("Found a sanitizer report (%d lines)", len(excerpt))
            report.asan_report = excerpt
            self._set_class(report, classify_sanitizer_report, excerpt)
            self._transition(PipelineState.TRACE_EXTRACTED)
            report.stacktrace = extract_sanitizer_stacktrace(excerpt)
        else:
            if signal is None:
                raise NoCrashDetected("Program terminated (no crash)")
            log.info("No sanitizer report, analyzing signal %d with the debugger", signal)
            self._analyze_signal(report, argv, signal, stdin_file)

        self._transition(PipelineState.LINE_RESOLVED)
        self._add_crash_line(report)

        self._transition(PipelineState.FINALIZED)
        log.info("Execution class: %s", report.execution_class.short_name)
        return report

    def _set_class(self, report: CrashReport, classify, *args):
        try:
            execution_class: Optional[ExecutionClass] = classify(*args)
        except ClassNotFound as e:
            log.warning("%s Keeping %s", e, report.execution_class.short_name)
            return
        if execution_class is not None:
            report.execution_class = execution_class

    def _analyze_signal(self, report: CrashReport, argv: List[str], signal: int, stdin_file):
        with timed_context(log, "Collecting the gdb transcript"):
            blobs = self.debugger.launch(argv, stdin_file, DEFAULT_COMMANDS)
        if len(blobs) < 2:
            raise ExternalToolFailure(f"Expected a backtrace and mappings from the debugger, got {len(blobs)} outputs")

        siginfo = blobs[2] if len(blobs) > 2 else None
        instruction = blobs[3] if len(blobs) > 3 else None
        access, near_null = parse_fault_access(siginfo, instruction, self.config.near_null_threshold)
        self._set_class(report, classify_signal, signal, access, near_null)

        self._transition(PipelineState.TRACE_EXTRACTED)
        report.stacktrace = extract_gdb_stacktrace(blobs[0])
        report.proc_maps = extract_gdb_mappings(blobs[1])

    def _add_crash_line(self, report: CrashReport):
        try:
            crash_line = resolve_crash_line(report, self.config)
        except CrashLineUnresolved as e:
            log.warning("Could not resolve the crash line: %s", e)
            return

        report.crashline = str(crash_line)
        log.info("Crash line: %s", report.crashline)
        if isinstance(crash_line, SourceLocation):
            source = fetch_source(crash_line, self.config.source_context_lines)
            if source is not None:
                report.source = source
