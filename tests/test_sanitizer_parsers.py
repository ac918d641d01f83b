import pytest

from triageguy.errors import ClassNotFound, StackTraceEndNotFound, StackTraceNotFound
from triageguy.models import AccessEnum
from triageguy.sanitizer_parsers import (
    classify_sanitizer_report,
    extract_sanitizer_stacktrace,
    find_sanitizer_report,
    parse_access_qualifier,
    split_lines,
)


def test_split_lines_is_strict():
    assert split_lines("a\r\nb\n\nc\n") == ["a\r", "b", "", "c", ""]
    assert split_lines("") == [""]


def test_find_report_bounds(heap_overflow_stderr):
    report = find_sanitizer_report(split_lines(heap_overflow_stderr))
    assert report[0].startswith("==12345==ERROR: AddressSanitizer: heap-buffer-overflow")
    assert report[-1] == "==12345==ABORTING"


def test_find_report_keeps_inner_empty_lines():
    lines = ["noise", "==42==ERROR: LeakSanitizer: detected memory leaks", "", "Direct leak", "", "", "SUMMARY: x", "", ""]
    assert find_sanitizer_report(lines) == lines[1:7]


def test_find_report_allows_space_before_error():
    lines = ["==4242== ERROR: libFuzzer: deadly signal", "SUMMARY: libFuzzer: deadly signal"]
    assert find_sanitizer_report(lines) == lines


@pytest.mark.parametrize("line", [
    "==1==ERROR: AddressSanitizer: SEGV",
    "ERROR: AddressSanitizer: SEGV",
    "==123==ERROR: UndefinedBehaviorSanitizer: SEGV",
    "==123==WARNING: AddressSanitizer: something",
])
def test_find_report_rejects(line):
    assert find_sanitizer_report([line, "tail"]) is None


def test_no_report():
    assert find_sanitizer_report(split_lines("Segmentation fault (core dumped)\n")) is None


@pytest.mark.parametrize("line,expected", [
    ("WRITE of size 4 at 0x602000000011 thread T0", AccessEnum.WRITE),
    ("READ of size 8 at 0x602000000011 thread T0", AccessEnum.READ),
    ("==77==The signal is caused by a WRITE memory access.", AccessEnum.WRITE),
    ("==77==The signal is caused by a READ memory access.", AccessEnum.READ),
    ("ACCESS of size 4 at 0x1", AccessEnum.UNDEFINED),
    ("==77==Hint: address points to the zero page.", AccessEnum.UNDEFINED),
])
def test_parse_access_qualifier(line, expected):
    assert parse_access_qualifier(line) == expected


def test_classify_heap_overflow(heap_overflow_stderr):
    report = find_sanitizer_report(split_lines(heap_overflow_stderr))
    assert classify_sanitizer_report(report).short_name == "heap-buffer-overflow(write)"


def test_classify_leak():
    report = [
        "==999==ERROR: LeakSanitizer: detected memory leaks",
        "",
        "SUMMARY: AddressSanitizer: 8 byte(s) leaked in 1 allocation(s).",
    ]
    assert classify_sanitizer_report(report).short_name == "memory-leaks"


def test_classify_libfuzzer_ignores_access():
    report = [
        "==4242== ERROR: libFuzzer: timeout after 25 seconds",
        "WRITE",
        "SUMMARY: libFuzzer: timeout",
    ]
    assert classify_sanitizer_report(report).short_name == "timeout"


def test_classify_asan_segv_uses_access_only():
    report = [
        "==77==ERROR: AddressSanitizer: SEGV on unknown address 0x000000000000 (pc 0x4f5c1a bp 0x0 sp 0x0 T0)",
        "==77==The signal is caused by a READ memory access.",
        "==77==Hint: address points to the zero page.",
        "SUMMARY: AddressSanitizer: SEGV /src/a.c:3:5 in f",
    ]
    assert classify_sanitizer_report(report).short_name == "SourceAv"


def test_classify_first_summary_wins():
    report = [
        "==1==ERROR: AddressSanitizer: stack-overflow on address 0x7ffe",
        "SUMMARY: AddressSanitizer: stack-overflow /src/a.c:3 in f",
        "SUMMARY: AddressSanitizer: heap-use-after-free /src/a.c:3 in f",
    ]
    assert classify_sanitizer_report(report).short_name == "StackOverflow"


def test_classify_without_summary():
    report = ["==1==ERROR: AddressSanitizer: heap-use-after-free on address 0x1", "READ of size 1"]
    assert classify_sanitizer_report(report) is None


def test_classify_unknown_check():
    report = ["==1==ERROR: AddressSanitizer: brand-new-check", "READ", "SUMMARY: AddressSanitizer: brand-new-check"]
    with pytest.raises(ClassNotFound):
        classify_sanitizer_report(report)


def test_extract_stacktrace(heap_overflow_stderr):
    report = find_sanitizer_report(split_lines(heap_overflow_stderr))
    assert extract_sanitizer_stacktrace(report) == [
        "#0 0x4f5c1a in parse_header /src/lib/parse.c:120:9",
        "#1 0x4f6d2b in LLVMFuzzerTestOneInput /src/fuzz/fuzz_parse.c:14:5",
        "#2 0x7f3a1c021c86 in __libc_start_main (/lib/x86_64-linux-gnu/libc.so.6+0x21c86)",
        "#3 0x41b2c9 in _start (/out/fuzz_parse+0x41b2c9)",
    ]


def test_extract_stacktrace_whitespace_line_is_not_the_end():
    report = ["==1==ERROR: AddressSanitizer: x", "    #0 0x1 in f a.c:1", "   ", "    #1 0x2 in g a.c:2", "", "tail"]
    assert extract_sanitizer_stacktrace(report) == ["#0 0x1 in f a.c:1", "", "#1 0x2 in g a.c:2"]


def test_extract_stacktrace_not_found():
    with pytest.raises(StackTraceNotFound):
        extract_sanitizer_stacktrace(["==1==ERROR: AddressSanitizer: x", "#0 0x1 in f", ""])


def test_extract_stacktrace_end_not_found():
    report = ["==1==ERROR: AddressSanitizer: x", "    #0 0x1 in f a.c:1", "    #1 0x2 in g a.c:2"]
    with pytest.raises(StackTraceEndNotFound):
        extract_sanitizer_stacktrace(report)
