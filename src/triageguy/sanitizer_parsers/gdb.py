import logging
import re
from typing import List, Optional, Tuple

from triageguy.models.execution_class import AccessEnum

log = logging.getLogger(__name__)

# `info proc mappings` prints a process line, a title line, a blank line and the column header
MAPPINGS_HEADER_LINES = 4

GDB_VALUE = re.compile(r'^\$\d+\s*=\s*(?:\([^)]*\)\s*)?(0x[0-9a-fA-F]+|\d+)', re.MULTILINE)
GDB_INSTRUCTION = re.compile(r'^=>\s*0x[0-9a-fA-F]+(?:\s*<[^>]*>)?:\s*(.+)$', re.MULTILINE)

INSTRUCTION_PREFIXES = {'lock', 'rep', 'repe', 'repz', 'repne', 'repnz', 'notrack', 'bnd', 'data16', 'addr32'}
# these name a memory operand without writing to it, or without touching memory at all (lea)
READ_ONLY_MNEMONICS = {'cmp', 'test', 'push', 'call', 'jmp', 'ucomisd', 'ucomiss', 'comisd', 'comiss'}
NO_ACCESS_MNEMONICS = {'lea', 'nop', 'prefetcht0', 'prefetcht1', 'prefetcht2', 'prefetchnta'}


def extract_gdb_stacktrace(backtrace: str) -> List[str]:
    return backtrace.split('\n')


def extract_gdb_mappings(mappings: str) -> List[str]:
    return mappings.split('\n')[MAPPINGS_HEADER_LINES:]


def parse_fault_address(siginfo: Optional[str]) -> Optional[int]:
    """The value printed for `p/x $_siginfo._sifields._sigfault.si_addr`."""
    if not siginfo:
        return None
    match = GDB_VALUE.search(siginfo)
    if match is None:
        log.debug("No fault address in %r", siginfo)
        return None
    return int(match.group(1), 0)


def split_operands(operands: str) -> List[str]:
    result = []
    depth = 0
    current = ''
    for c in operands:
        if c in '[(':
            depth += 1
        elif c in '])':
            depth -= 1
        if c == ',' and depth == 0:
            result.append(current.strip())
            current = ''
            continue
        current += c
    if current.strip():
        result.append(current.strip())
    return result


def parse_instruction_access(instruction: Optional[str]) -> AccessEnum:
    """
    Access direction of the faulting instruction as printed by `x/i $pc`.

    Only the operand text is inspected: a memory operand in destination position
    means WRITE, a memory operand anywhere else means READ. Intel syntax puts the
    destination first (`mov DWORD PTR [rax],0x1`), AT&T syntax last
    (`movl $0x1,(%rax)`).
    """
    if not instruction:
        return AccessEnum.UNDEFINED
    match = GDB_INSTRUCTION.search(instruction)
    if match is None:
        return AccessEnum.UNDEFINED

    tokens = match.group(1).split()
    while tokens and tokens[0] in INSTRUCTION_PREFIXES:
        tokens = tokens[1:]
    if not tokens:
        return AccessEnum.UNDEFINED
    mnemonic = tokens[0]
    operands = split_operands(' '.join(tokens[1:]))
    if not operands or mnemonic in NO_ACCESS_MNEMONICS:
        return AccessEnum.UNDEFINED

    att_syntax = '%' in match.group(1)
    is_memory = (lambda op: '(' in op) if att_syntax else (lambda op: '[' in op)
    memory_operands = [i for i, op in enumerate(operands) if is_memory(op)]
    if not memory_operands:
        return AccessEnum.UNDEFINED

    # AT&T mnemonics may carry a size suffix (cmpl, pushq)
    if mnemonic in READ_ONLY_MNEMONICS or (att_syntax and mnemonic[:-1] in READ_ONLY_MNEMONICS):
        return AccessEnum.READ
    destination = len(operands) - 1 if att_syntax else 0
    if destination in memory_operands:
        return AccessEnum.WRITE
    return AccessEnum.READ


def parse_fault_access(siginfo: Optional[str], instruction: Optional[str], near_null_threshold: int) -> Tuple[AccessEnum, bool]:
    address = parse_fault_address(siginfo)
    near_null = address is not None and address < near_null_threshold
    access = parse_instruction_access(instruction)
    log.debug("Fault address %s, access %s, near_null=%s", hex(address) if address is not None else None, access.value, near_null)
    return access, near_null
