from pathlib import Path
from typing import List, Optional

import pytest

from triageguy.config import TriageguyConfig
from triageguy.debuggers import Debugger

HEAP_OVERFLOW_STDERR = """\
INFO: Running with entropic power schedule (0xFF, 100).
INFO: Seed: 1337
==12345==ERROR: AddressSanitizer: heap-buffer-overflow on address 0x602000000011 at pc 0x4f5c1a bp 0x7ffc9c5e8f10 sp 0x7ffc9c5e8f08
WRITE of size 4 at 0x602000000011 thread T0
    #0 0x4f5c1a in parse_header /src/lib/parse.c:120:9
    #1 0x4f6d2b in LLVMFuzzerTestOneInput /src/fuzz/fuzz_parse.c:14:5
    #2 0x7f3a1c021c86 in __libc_start_main (/lib/x86_64-linux-gnu/libc.so.6+0x21c86)
    #3 0x41b2c9 in _start (/out/fuzz_parse+0x41b2c9)

0x602000000011 is located 0 bytes to the right of 1-byte region [0x602000000010,0x602000000011)
allocated by thread T0 here:
    #0 0x4b2a3d in malloc (/out/fuzz_parse+0x4b2a3d)
    #1 0x4f5b00 in parse_header /src/lib/parse.c:110:17

SUMMARY: AddressSanitizer: heap-buffer-overflow /src/lib/parse.c:120:9 in parse_header
Shadow bytes around the buggy address:
==12345==ABORTING

"""

GDB_MAPPINGS = """\
process 4242
Mapped address spaces:

          Start Addr           End Addr       Size     Offset  Perms  objfile
      0x555555554000     0x555555555000     0x1000        0x0  r--p   /tmp/triage/null
      0x555555555000     0x555555556000     0x1000     0x1000  r-xp   /tmp/triage/null
      0x7ffff7d86000     0x7ffff7dae000    0x28000        0x0  r--p   /usr/lib/x86_64-linux-gnu/libc.so.6
      0x7ffff7dae000     0x7ffff7f43000   0x195000    0x28000  r-xp   /usr/lib/x86_64-linux-gnu/libc.so.6"""

NULL_WRITE_SOURCE = """\
#include <stddef.h>

void crash(int *p) {
    *p = 42;
}

int main(void) {
    int *p = NULL;
    crash(p);
    return 0;
}
"""


class FakeDebugger(Debugger):
    """Replays a canned gdb transcript."""

    def __init__(self, outputs: List[str]):
        self.outputs = outputs
        self.calls = []

    def launch(self, argv, stdin_file=None, commands=None) -> List[str]:
        self.calls.append((list(argv), stdin_file, list(commands or [])))
        return list(self.outputs)


class UnusableDebugger(Debugger):
    def launch(self, argv, stdin_file=None, commands=None) -> List[str]:
        raise AssertionError("the debugger must not run on the sanitizer path")


def gdb_backtrace(source_path: Optional[Path] = None) -> str:
    if source_path is None:
        return (
            "#0  0x0000555555555149 in crash ()\n"
            "#1  0x0000555555555170 in main ()\n"
            "#2  0x00007ffff7dae100 in __libc_start_main () from /usr/lib/x86_64-linux-gnu/libc.so.6"
        )
    return (
        f"#0  0x0000555555555149 in crash (p=0x0) at {source_path}:4\n"
        f"#1  0x0000555555555170 in main () at {source_path}:9"
    )


@pytest.fixture
def config():
    return TriageguyConfig()


@pytest.fixture
def heap_overflow_stderr():
    return HEAP_OVERFLOW_STDERR


@pytest.fixture
def gdb_mappings():
    return GDB_MAPPINGS


@pytest.fixture
def null_write_source(tmp_path):
    path = tmp_path / "null.c"
    path.write_text(NULL_WRITE_SOURCE)
    return path


@pytest.fixture
def null_write_debugger(null_write_source):
    return FakeDebugger([
        gdb_backtrace(null_write_source),
        GDB_MAPPINGS,
        "$1 = (void *) 0x0",
        "=> 0x555555555149 <crash+16>:\tmov    DWORD PTR [rax],0x2a",
    ])
