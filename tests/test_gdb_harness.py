import pytest

import triageguy.debuggers.gdb.harness
from triageguy.debuggers import DEFAULT_COMMANDS, GDBDebugger
from triageguy.debuggers.gdb.harness import console_output
from triageguy.errors import ExternalToolFailure


def console(text):
    return {"type": "console", "message": None, "payload": text, "token": None, "stream": "stdout"}


def done():
    return {"type": "result", "message": "done", "payload": None, "token": None, "stream": "stdout"}


def error(msg):
    return {"type": "result", "message": "error", "payload": {"msg": msg}, "token": None, "stream": "stdout"}


def stopped(reason, **extra):
    return {"type": "notify", "message": "stopped", "payload": {"reason": reason, **extra}, "token": None, "stream": "stdout"}


class FakeProcess:
    def poll(self):
        return None


class FakeGdbController:
    """Answers gdb commands from a table; the stop notification arrives after `run`."""

    instances = []

    def __init__(self, command=None, answers=None, stop=None):
        self.command = command
        self.answers = answers or {}
        self.stop = stop or stopped("signal-received", **{"signal-name": "SIGSEGV"})
        self.written = []
        self.pending = []
        self.exited = False
        self.gdb_process = FakeProcess()
        FakeGdbController.instances.append(self)

    def write(self, cmd, timeout_sec=1, raise_error_on_timeout=True):
        self.written.append(cmd)
        if cmd.startswith("run"):
            self.pending = [self.stop]
            return [{"type": "result", "message": "running", "payload": None, "token": None, "stream": "stdout"}]
        return list(self.answers.get(cmd, [done()]))

    def get_gdb_response(self, timeout_sec=1, raise_error_on_timeout=True):
        responses, self.pending = self.pending, []
        return responses

    def exit(self):
        self.exited = True


@pytest.fixture
def fake_gdb(monkeypatch):
    FakeGdbController.instances = []

    def install(**kwargs):
        monkeypatch.setattr(
            triageguy.debuggers.gdb.harness,
            "GdbController",
            lambda command=None: FakeGdbController(command=command, **kwargs),
        )

    return install


def test_console_output_joins_records():
    responses = [console("#0  0x0000555555555149 in crash (p=0x0) "), console("at null.c:4\n"), console("#1  main ()\n"), done()]
    assert console_output(responses) == "#0  0x0000555555555149 in crash (p=0x0) at null.c:4\n#1  main ()"


def test_launch(fake_gdb, tmp_path):
    fake_gdb(answers={
        "bt": [console("#0  0x0000555555555149 in crash ()\n"), console("#1  0x0000555555555170 in main ()\n"), done()],
        "info proc mappings": [console("process 1\n"), console("Mapped address spaces:\n\n"), done()],
        DEFAULT_COMMANDS[2]: [console("$1 = (void *) 0x0\n"), done()],
        DEFAULT_COMMANDS[3]: [console("=> 0x555555555149 <crash+16>:\tmov    DWORD PTR [rax],0x2a\n"), done()],
    })
    stdin = tmp_path / "input"
    outputs = GDBDebugger().launch(["/tmp/triage/null", "a b"], stdin)

    assert outputs == [
        "#0  0x0000555555555149 in crash ()\n#1  0x0000555555555170 in main ()",
        "process 1\nMapped address spaces:",
        "$1 = (void *) 0x0",
        "=> 0x555555555149 <crash+16>:\tmov    DWORD PTR [rax],0x2a",
    ]
    controller = FakeGdbController.instances[0]
    assert controller.command[0] == "gdb"
    assert "set disable-randomization on" in controller.written
    assert "file /tmp/triage/null" in controller.written
    assert "set args 'a b'" in controller.written
    assert f"run < {stdin}" in controller.written
    assert controller.written[-4:] == DEFAULT_COMMANDS
    assert controller.exited


def test_launch_custom_commands(fake_gdb):
    fake_gdb(answers={"info registers rip": [console("rip 0x401136 0x401136 <main+4>\n"), done()]})
    assert GDBDebugger().launch(["/bin/prog"], commands=["info registers rip"]) == ["rip 0x401136 0x401136 <main+4>"]
    assert "run" in FakeGdbController.instances[0].written


def test_launch_program_exits(fake_gdb):
    fake_gdb(stop=stopped("exited-normally"))
    with pytest.raises(ExternalToolFailure):
        GDBDebugger().launch(["/bin/true"])
    assert FakeGdbController.instances[0].exited


def test_launch_gdb_error(fake_gdb):
    fake_gdb(answers={"file /nonexistent": [error("/nonexistent: No such file or directory.")]})
    with pytest.raises(ExternalToolFailure, match="No such file"):
        GDBDebugger().launch(["/nonexistent"])


def test_gdb_missing(monkeypatch):
    def missing(command=None):
        raise ValueError('gdb executable could not be resolved from "gdb"')

    monkeypatch.setattr(triageguy.debuggers.gdb.harness, "GdbController", missing)
    with pytest.raises(ExternalToolFailure):
        GDBDebugger().launch(["/bin/prog"])


def test_launch_unreadable_pc(fake_gdb):
    # a call through a corrupted pointer leaves pc unmapped
    fake_gdb(answers={
        "bt": [console("#0  0x0000000041414141 in ?? ()\n"), console("#1  0x0000555555555170 in main ()\n"), done()],
        "info proc mappings": [console("process 1\n"), done()],
        DEFAULT_COMMANDS[2]: [console("$1 = (void *) 0x41414141\n"), done()],
        DEFAULT_COMMANDS[3]: [console("=> 0x41414141:\t"), error("Cannot access memory at address 0x41414141")],
    })
    outputs = GDBDebugger().launch(["/tmp/triage/callptr"])
    assert outputs[0].startswith("#0  0x0000000041414141 in ?? ()")
    assert outputs[2] == "$1 = (void *) 0x41414141"
    assert outputs[3] == ""
    assert FakeGdbController.instances[0].exited


def test_launch_unreadable_siginfo(fake_gdb):
    fake_gdb(answers={DEFAULT_COMMANDS[2]: [error("Unable to read siginfo")]})
    outputs = GDBDebugger().launch(["/tmp/triage/null"])
    assert outputs[2] == ""


def test_launch_backtrace_failure_is_fatal(fake_gdb):
    fake_gdb(answers={"bt": [error("No stack.")]})
    with pytest.raises(ExternalToolFailure, match="No stack"):
        GDBDebugger().launch(["/tmp/triage/null"])


def test_launch_mappings_failure_is_fatal(fake_gdb):
    fake_gdb(answers={"info proc mappings": [error("No current process: you must name one.")]})
    with pytest.raises(ExternalToolFailure, match="No current process"):
        GDBDebugger().launch(["/tmp/triage/null"])
