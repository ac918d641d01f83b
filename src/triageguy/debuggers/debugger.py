import logging
from pathlib import Path
from typing import List, Optional, Union

log = logging.getLogger(__name__)

BACKTRACE_COMMAND = "bt"
MAPPINGS_COMMAND = "info proc mappings"
FAULT_ADDRESS_COMMAND = "p/x $_siginfo._sifields._sigfault.si_addr"
FAULT_INSTRUCTION_COMMAND = "x/i $pc"

DEFAULT_COMMANDS = [
    BACKTRACE_COMMAND,
    MAPPINGS_COMMAND,
    FAULT_ADDRESS_COMMAND,
    FAULT_INSTRUCTION_COMMAND,
]

# only feed the fault access heuristic; gdb fails on them when pc or si_addr is unreadable
OPTIONAL_COMMANDS = {FAULT_ADDRESS_COMMAND, FAULT_INSTRUCTION_COMMAND}


class Debugger:
    """
    Runs a target under a debugger until it stops on a signal and collects the
    output of a list of debugger commands at that point.
    """

    def launch(
        self,
        argv: List[str],
        stdin_file: Optional[Union[str, Path]] = None,
        commands: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Run `argv` (with `stdin_file` redirected to its stdin, if given) and execute
        `commands` once the program stopped on a signal.

        Args:
            argv: The target's command line, argv[0] being the program.
            stdin_file: Optional file to use as the target's stdin.
            commands: The commands to execute, DEFAULT_COMMANDS if None.

        Returns:
            One text blob per command, in the order the commands were given.

        Raises:
            NotImplementedError: Subclasses must implement this method.
        """
        raise NotImplementedError("Subclasses must implement this method")
