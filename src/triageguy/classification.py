"""
Lookups over the execution class table.

`find_by_name` is an exact lookup. `derive` resolves sanitizer check names and
signal names that need context (access direction, near-NULL fault address) before
an exact lookup applies. Its rules are evaluated top to bottom and the first rule
whose predicate holds decides the outcome.
"""
import logging
import signal
from typing import Callable, List, Optional, Tuple

from triageguy.errors import ClassNotFound
from triageguy.models.execution_class import EXECUTION_CLASSES, AccessEnum, ExecutionClass

log = logging.getLogger(__name__)

SEGV_CLASSES = {
    (AccessEnum.READ, False): "SourceAv",
    (AccessEnum.READ, True): "SourceAvNearNull",
    (AccessEnum.WRITE, False): "DestAv",
    (AccessEnum.WRITE, True): "DestAvNearNull",
}
SEGV_FALLBACK_CLASS = "AccessViolation"

SIGNAL_CLASSES = {
    signal.SIGILL: "BadInstruction",
    signal.SIGABRT: "AbortSignal",
}


def find_by_name(short_name: str) -> ExecutionClass:
    try:
        return EXECUTION_CLASSES[short_name]
    except KeyError:
        raise ClassNotFound(short_name) from None


def _resolve_segv(short_name: str, access: AccessEnum, near_null: bool) -> ExecutionClass:
    return find_by_name(SEGV_CLASSES.get((access, near_null), SEGV_FALLBACK_CLASS))


def _resolve_qualified(short_name: str, access: AccessEnum, near_null: bool) -> ExecutionClass:
    if access == AccessEnum.READ:
        qualified = f"{short_name}(read)"
    elif access == AccessEnum.WRITE:
        qualified = f"{short_name}(write)"
    else:
        return find_by_name(short_name)

    try:
        return find_by_name(qualified)
    except ClassNotFound:
        # only a subset of checks carries (read)/(write) variants
        return find_by_name(short_name)


Rule = Tuple[Callable[[str], bool], Callable[[str, AccessEnum, bool], ExecutionClass]]

DERIVATION_RULES: List[Rule] = [
    (lambda name: name == "SEGV", _resolve_segv),
    (lambda name: name == "stack-overflow", lambda name, access, near_null: find_by_name("StackOverflow")),
    # "deadly signal" loses its second word to the summary regex
    (lambda name: name == "deadly", lambda name, access, near_null: find_by_name("AbortSignal")),
    (lambda name: True, _resolve_qualified),
]


def derive(short_name: str, access: Optional[AccessEnum] = None, near_null: bool = False) -> ExecutionClass:
    if access is None:
        access = AccessEnum.UNDEFINED
    for predicate, resolve in DERIVATION_RULES:
        if predicate(short_name):
            return resolve(short_name, access, near_null)
    raise ClassNotFound(short_name)


def classify_signal(signum: int, access: Optional[AccessEnum] = None, near_null: bool = False) -> Optional[ExecutionClass]:
    """
    Map a fatal termination signal to an execution class.

    Returns None for signals without a dedicated class; the report then keeps its
    default `Undefined` class.
    """
    if signum == signal.SIGSEGV:
        return derive("SEGV", access, near_null)
    name = SIGNAL_CLASSES.get(signum)
    if name is None:
        log.info("No execution class for signal %d", signum)
        return None
    return find_by_name(name)
