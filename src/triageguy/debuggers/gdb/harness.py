import logging
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pygdbmi.gdbcontroller import GdbController

from triageguy.config import TriageguyConfig
from triageguy.debuggers.debugger import DEFAULT_COMMANDS, OPTIONAL_COMMANDS, Debugger
from triageguy.errors import ExternalToolFailure

log = logging.getLogger("gdb")

GdbResponse = Dict[str, Any]


def console_output(responses: List[GdbResponse]) -> str:
    # gdb splits long console lines (e.g. backtrace frames) over several stream records
    return "".join(
        r["payload"] for r in responses if r["type"] == "console" and isinstance(r["payload"], str)
    ).rstrip("\n")


def find_error(responses: List[GdbResponse]) -> Optional[str]:
    for r in responses:
        if r["type"] == "result" and r["message"] == "error":
            payload = r["payload"] or {}
            return payload.get("msg", str(payload))
    return None


def find_stop(responses: List[GdbResponse]) -> Optional[GdbResponse]:
    for r in responses:
        if r["type"] == "notify" and r["message"] == "stopped":
            return r
    return None


class GDBDebugger(Debugger):
    def __init__(self, config: Optional[TriageguyConfig] = None, max_attempts: int = 10):
        self.config = config or TriageguyConfig()
        self.max_attempts = max_attempts
        self._controller: Optional[GdbController] = None

    def _get_controller(self) -> GdbController:
        try:
            return GdbController(command=list(self.config.gdb_command))
        except (ValueError, OSError) as e:
            raise ExternalToolFailure(f"Could not start gdb ({' '.join(self.config.gdb_command)}): {e}") from e

    def _read(self) -> List[GdbResponse]:
        if self._controller.gdb_process.poll() is not None:
            raise ExternalToolFailure("gdb exited unexpectedly")
        return self._controller.get_gdb_response(
            timeout_sec=self.config.gdb_response_timeout, raise_error_on_timeout=False
        )

    def raw(self, cmd: str) -> List[GdbResponse]:
        """Send a command and collect responses up to its result record."""
        log.debug("RAW CMD: %s", cmd)
        responses = self._controller.write(
            cmd, timeout_sec=self.config.gdb_response_timeout, raise_error_on_timeout=False
        )
        attempts = self.max_attempts
        while not any(r["type"] == "result" for r in responses):
            attempts -= 1
            if attempts == 0:
                log.error("GDB did not respond to %s", cmd)
                raise ExternalToolFailure(f"gdb did not respond to `{cmd}`")
            log.debug(" 🥱 Waiting for response from gdb")
            responses += self._read()

        error = find_error(responses)
        if error is not None:
            raise ExternalToolFailure(f"gdb failed to execute `{cmd}`: {error}")
        return responses

    def _wait_for_stop(self, responses: List[GdbResponse]) -> GdbResponse:
        # the target runs for as long as it needs to, there is no timeout here
        stop = find_stop(responses)
        while stop is None:
            stop = find_stop(self._read())

        reason = stop["payload"].get("reason", "")
        if reason.startswith("exited"):
            raise ExternalToolFailure(f"Program exited without a crash under gdb ({reason})")
        log.info("Program stopped under gdb: %s %s", reason, stop["payload"].get("signal-name", ""))
        return stop

    def _collect(self, cmd: str) -> str:
        try:
            return console_output(self.raw(cmd))
        except ExternalToolFailure as e:
            if cmd not in OPTIONAL_COMMANDS:
                raise
            log.warning("Ignoring failed optional command: %s", e)
            return ""

    def launch(
        self,
        argv: List[str],
        stdin_file: Optional[Union[str, Path]] = None,
        commands: Optional[List[str]] = None,
    ) -> List[str]:
        if commands is None:
            commands = DEFAULT_COMMANDS

        self._controller = self._get_controller()
        try:
            self.raw("set disassembly-flavor intel")
            self.raw("set disable-randomization on")
            self.raw("set pagination off")
            self.raw(f"file {argv[0]}")
            if len(argv) > 1:
                self.raw(f"set args {' '.join(shlex.quote(arg) for arg in argv[1:])}")

            if stdin_file is not None:
                run_output = self.raw(f"run < {shlex.quote(str(stdin_file))}")
            else:
                run_output = self.raw("run")
            self._wait_for_stop(run_output)

            return [self._collect(cmd) for cmd in commands]
        finally:
            self.quit()

    def quit(self):
        if self._controller is None:
            return
        self._controller.exit()
        self._controller = None
