from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple

from pydantic import ConfigDict, Field

from triageguy.models.base import TriageguyBaseModel


class SeverityEnum(str, Enum):
    EXPLOITABLE = "EXPLOITABLE"
    PROBABLY_EXPLOITABLE = "PROBABLY_EXPLOITABLE"
    NOT_EXPLOITABLE = "NOT_EXPLOITABLE"
    UNDEFINED = "UNDEFINED"


class AccessEnum(str, Enum):
    READ = "READ"
    WRITE = "WRITE"
    UNDEFINED = "UNDEFINED"


class ExecutionClass(TriageguyBaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    severity: SeverityEnum = Field(alias="Type", description="How likely the fault is to be attacker-controllable")
    short_name: str = Field(alias="ShortDescription", description="Unique, machine-readable class name")
    description: str = Field(alias="Description", description="Short human readable label")
    explanation: str = Field(alias="Explanation", default="", description="Long-form rationale for the class")

    @classmethod
    def from_row(cls, row: Tuple[SeverityEnum, str, str, str]) -> "ExecutionClass":
        severity, short_name, description, explanation = row
        return cls(severity=severity, short_name=short_name, description=description, explanation=explanation)

    def __str__(self):
        explanation = f"\nExplanation: {self.explanation}" if self.explanation else ""
        return (
            f"Severity: {self.severity.value}\n"
            f"Short description: {self.short_name}\n"
            f"Description: {self.description}{explanation}"
        )


# (severity, short name, description, explanation)
# Sanitizer check names with a read/write refinement appear three times: `name(read)`, `name`, `name(write)`.
CLASSES: Tuple[Tuple[SeverityEnum, str, str, str], ...] = (
    (SeverityEnum.EXPLOITABLE, "SegFaultOnPc", "Segmentation fault on program counter", "The target tried to access data at an address that matches the program counter. This likely indicates that the program counter contents are tainted and can be controlled by an attacker."),
    (SeverityEnum.EXPLOITABLE, "ReturnAv", "Access violation during return instruction", "The target crashed on a return instruction, which likely indicates stack corruption."),
    (SeverityEnum.EXPLOITABLE, "BranchAv", "Access violation during branch instruction", "The target crashed on a branch instruction, which may indicate that the control flow is tainted."),
    (SeverityEnum.EXPLOITABLE, "CallAv", "Access violation during call instruction", "The target crashed on a call instruction, which may indicate that the control flow is tainted."),
    (SeverityEnum.EXPLOITABLE, "DestAv", "Access violation on destination operand", "The target crashed on an access violation at an address matching the destination operand of the instruction. This likely indicates a write access violation, which means the attacker may control the write address and/or value."),
    (SeverityEnum.EXPLOITABLE, "BranchAvTainted", "Access violation during branch instruction from tainted source", "The target crashed on loading from memory (SourceAv). After taint tracking, target operand of branch instruction could be tainted."),
    (SeverityEnum.EXPLOITABLE, "CallAvTainted", "Access violation during call instruction from tainted source", "The target crashed on loading from memory (SourceAv). After taint tracking, target operand of call instruction could be tainted."),
    (SeverityEnum.EXPLOITABLE, "DestAvTainted", "Access violation on destination operand from tainted source", "The target crashed on loading from memory (SourceAv). After taint tracking, addres operand of memory store instruction could be tainted. This likely indicates a write access violation, which means the attacker may control the write address and/or value."),
    (SeverityEnum.NOT_EXPLOITABLE, "AbortSignal", "Abort signal", "The target is stopped on a SIGABRT. SIGABRTs are often generated by libc and compiled check-code to indicate potentially exploitable conditions."),
    (SeverityEnum.NOT_EXPLOITABLE, "TrapSignal", "Trap signal", "The target is stopped on a SIGTRAP. The SIGTRAP signal is sent to a process when an exception (or trap) occurs: a condition that a debugger has requested to be informed of – for example, when a particular function is executed, or when a particular variable changes value. "),
    (SeverityEnum.NOT_EXPLOITABLE, "AccessViolation", "Access violation", "The target crashed due to an access violation but there is not enough additional information available to determine exploitability. Manual analysis is needed."),
    (SeverityEnum.NOT_EXPLOITABLE, "SourceAv", "Access violation on source operand", "The target crashed on an access violation at an address matching the source operand of the current instruction. This likely indicates a read access violation."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "BadInstruction", "Bad instruction", "The target tried to execute a malformed or privileged instruction. This may indicate that the control flow is tainted."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "SegFaultOnPcNearNull", "Segmentation fault on program counter near NULL", "The target tried to access data at an address that matches the program counter. This may indicate that the program counter contents are tainted, however, it may also indicate a simple NULL dereference."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "BranchAvNearNull", "Access violation near NULL during branch instruction", "The target crashed on a branch instruction, which may indicate that the control flow is tainted. However, there is a chance it could be a NULL dereference."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "CallAvNearNull", "Access violation near NULL during call instruction", "The target crashed on a call instruction, which may indicate that the control flow is tainted. However, there is a chance it could be a NULL dereference."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "DestAvNearNull", "Access violation near NULL on destination operand", "The target crashed on an access violation at an address matching the destination operand of the instruction. This likely indicates a write access violation, which means the attacker may control write address and/or value. However, it there is a chance it could be a NULL dereference."),
    (SeverityEnum.NOT_EXPLOITABLE, "SourceAvNearNull", "Access violation near NULL on source operand", "The target crashed on an access violation at an address matching the source operand of the current instruction. This likely indicates a read access violation, which may mean the application crashed on a simple NULL dereference to data structure that has no immediate effect on control of the processor."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "StackGuard", "Stack buffer overflow", "The target program is aborted due to stack cookie overwrite."),
    (SeverityEnum.NOT_EXPLOITABLE, "SafeFunctionCheck", "Safe function check guard", "The target program is aborted due to safe function check guard: _chk()."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "HeapError", "Heap error", "The target program is aborted due to error produced by heap allocator functions."),
    (SeverityEnum.NOT_EXPLOITABLE, "FPE", "Arithmetic exception", "The target crashed due to arithmetic floating point exception."),
    (SeverityEnum.NOT_EXPLOITABLE, "StackOverflow", "Stack overflow", "The target crashed on an access violation where the faulting instruction's mnemonic and the stack pointer seem to indicate a stack overflow."),
    (SeverityEnum.UNDEFINED, "Undefined", "Undefined class", "There is no execution class for this type of exception."),
    (SeverityEnum.NOT_EXPLOITABLE, "double-free", "Deallocation of freed memory", "The target crashed while trying to deallocate already freed memory."),
    (SeverityEnum.NOT_EXPLOITABLE, "bad-free", "Invalid memory deallocation", "The target crashed on attempting free on address which was not malloc()-ed."),
    (SeverityEnum.NOT_EXPLOITABLE, "alloc-dealloc-mismatch", "Invalid use of alloc/dealloc functions", "Mismatch between allocation and deallocation APIs."),
    (SeverityEnum.NOT_EXPLOITABLE, "unknown-crash", "Sanitizer check fail", "Invalid memory access."),
    (SeverityEnum.NOT_EXPLOITABLE, "heap-buffer-overflow(read)", "Heap buffer overflow", "The target reads data past the end, or before the beginning, of the intended heap buffer."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "heap-buffer-overflow", "Heap buffer overflow", "The target attempts to read or write data past the end, or before the beginning, of the intended heap buffer."),
    (SeverityEnum.EXPLOITABLE, "heap-buffer-overflow(write)", "Heap buffer overflow", "The target writes data past the end, or before the beginning, of the intended heap buffer."),
    (SeverityEnum.NOT_EXPLOITABLE, "global-buffer-overflow(read)", "Global buffer overflow", "The target reads data past the end, or before the beginning, of the intended global buffer."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "global-buffer-overflow", "Global buffer overflow", "The target attempts to read or write data past the end, or before the beginning, of the intended global buffer."),
    (SeverityEnum.EXPLOITABLE, "global-buffer-overflow(write)", "Global buffer overflow", "The target writes data past the end, or before the beginning, of the intended global buffer."),
    (SeverityEnum.NOT_EXPLOITABLE, "stack-use-after-scope(read)", "Use of out-of-scope stack memory", "The target crashed when reading from a stack address outside the lexical scope of a variable's lifetime."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "stack-use-after-scope", "Use of out-of-scope stack memory", "The target crashed when using a stack address outside the lexical scope of a variable's lifetime."),
    (SeverityEnum.EXPLOITABLE, "stack-use-after-scope(write)", "Use of out-of-scope stack memory", "The target crashed when writing on a stack address outside the lexical scope of a variable's lifetime."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "use-after-poison", "Using poisoned memory", "The target crashed on trying to use the memory that was previously poisoned."),
    (SeverityEnum.NOT_EXPLOITABLE, "stack-use-after-return(read)", "Use of stack memory after return", "The target crashed when reading from a stack memory of a returned function."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "stack-use-after-return", "Use of stack memory after return", "The target crashed when using a stack memory of a returned function."),
    (SeverityEnum.EXPLOITABLE, "stack-use-after-return(write)", "Use of stack memory after return", "The target crashed when writing to a stack memory of a returned function."),
    (SeverityEnum.NOT_EXPLOITABLE, "stack-buffer-overflow(read)", "Stack buffer overflow", "The target reads data past the end, or before the beginning, of the intended stack buffer."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "stack-buffer-overflow", "Stack buffer overflow", "The target attempts to read or write data past the end, or before the beginning, of the intended stack buffer."),
    (SeverityEnum.EXPLOITABLE, "stack-buffer-overflow(write)", "Stack buffer overflow", "The target writes data past the end, or before the beginning, of the intended stack buffer."),
    (SeverityEnum.NOT_EXPLOITABLE, "initialization-order-fiasco", "Bad initialization order", "Initializer for a global variable accesses dynamically initialized global from another translation unit, which is not yet initialized."),
    (SeverityEnum.NOT_EXPLOITABLE, "stack-buffer-underflow(read)", "Stack buffer underflow", "The target reads from a buffer using buffer access mechanisms such as indexes or pointers that reference memory locations prior to the targeted buffer."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "stack-buffer-underflow", "Stack buffer underflow", "The target is using buffer with an index or pointer that references a memory location prior to the beginning of the buffer."),
    (SeverityEnum.EXPLOITABLE, "stack-buffer-underflow(write)", "Stack buffer underflow", "The target writes to a buffer using an index or pointer that references a memory location prior to the beginning of the buffer."),
    (SeverityEnum.NOT_EXPLOITABLE, "heap-use-after-free(read)", "Use of deallocated memory", "The target crashed when reading from memory after it has been freed."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "heap-use-after-free", "Use of deallocated memory", "The target crashed when using memory after it has been freed."),
    (SeverityEnum.EXPLOITABLE, "heap-use-after-free(write)", "Use of deallocated memory", "The target crashed when writing to memory after it has been freed."),
    (SeverityEnum.NOT_EXPLOITABLE, "container-overflow(read)", "Container overflow", "The target crashed when reading from memory inside the allocated heap region but outside of the current container bounds."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "container-overflow", "Container overflow", "The target crashed when using memory inside the allocated heap region but outside of the current container bounds."),
    (SeverityEnum.EXPLOITABLE, "container-overflow(write)", "Container overflow", "The target crashed when writing to memory inside the allocated heap region but outside of the current container bounds."),
    (SeverityEnum.NOT_EXPLOITABLE, "new-delete-type-mismatch", "Invalid use of new/delete functions", "Deallocation size different from allocation size."),
    (SeverityEnum.NOT_EXPLOITABLE, "bad-malloc_usable_size", "Bad function use", "Invalid argument to malloc_usable_size."),
    (SeverityEnum.EXPLOITABLE, "param-overlap", "Overlapping memory ranges", "Call to function disallowing overlapping memory ranges."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "negative-size-param", "Use of negative size", "Negative size used when accessing memory."),
    (SeverityEnum.NOT_EXPLOITABLE, "odr-violation", "Multiple symbol definition", "Symbol defined in multiple translation units."),
    (SeverityEnum.NOT_EXPLOITABLE, "memory-leaks", "Memory leaks", "The target does not sufficiently track and release allocated memory after it has been used, which slowly consumes remaining memory."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "calloc-overflow", "Calloc parameters overflow", "Overflow in calloc parameters."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "reallocarray-overflow", "Realloc parameters overflow", "Overflow in realloc parameters."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "pvalloc-overflow", "Pvalloc parameters overflow", "Overflow in pvalloc parameters."),
    (SeverityEnum.NOT_EXPLOITABLE, "invalid-allocation-alignment", "Invalid alignment", "Invalid allocation alignment."),
    (SeverityEnum.NOT_EXPLOITABLE, "invalid-aligned-alloc-alignment", "Invalid alignment", "Invalid alignment requested in aligned_alloc."),
    (SeverityEnum.NOT_EXPLOITABLE, "invalid-posix-memalign-alignment", "Invalid alignment", "Invalid alignment requested in posix_memalign."),
    (SeverityEnum.NOT_EXPLOITABLE, "allocation-size-too-big", "Allocation size too big", "Requested allocation size exceeds maximum supported size."),
    (SeverityEnum.NOT_EXPLOITABLE, "out-of-memory", "Memory limit exceeded", "The target has exceeded the memory limit."),
    (SeverityEnum.NOT_EXPLOITABLE, "fuzz target exited", "Fuzz target exited", "Fuzz target exited."),
    (SeverityEnum.NOT_EXPLOITABLE, "timeout", "Target timeout expired", "Timeout after several seconds."),
    (SeverityEnum.PROBABLY_EXPLOITABLE, "overwrites-const-input", "Attempt to overwrite constant input", "Fuzz target overwrites its constant input."),
)

EXECUTION_CLASSES: Mapping[str, ExecutionClass] = MappingProxyType(
    {row[1]: ExecutionClass.from_row(row) for row in CLASSES}
)
assert len(EXECUTION_CLASSES) == len(CLASSES), "execution class short names must be unique"

UNDEFINED_CLASS_NAME = "Undefined"
