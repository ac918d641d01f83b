import ctypes
import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import Field

from triageguy.config import TriageguyConfig
from triageguy.errors import ExternalToolFailure, TargetOutOfMemory
from triageguy.models.base import TriageguyBaseModel
from triageguy.utils import safe_decode_string

log = logging.getLogger(__name__)

# linux/personality.h
ADDR_NO_RANDOMIZE = 0x0040000
PERSONALITY_QUERY = 0xffffffff

OOM_MARKER = b"AddressSanitizer: hard rss limit exhausted"


class TargetResult(TriageguyBaseModel):
    argv: List[str] = Field(description="The command line the target was run with")
    exit_code: Optional[int] = Field(default=None, description="The exit code, None if the target was killed by a signal")
    signal: Optional[int] = Field(default=None, description="The signal that terminated the target, if any")
    stderr: bytes = Field(default=b"", description="The captured stderr of the target")

    @property
    def stderr_text(self) -> str:
        return safe_decode_string(self.stderr)

    @property
    def crashed(self) -> bool:
        return self.signal is not None


def build_asan_options(current: Optional[str], hard_rss_limit_mb: int) -> str:
    if current is None:
        return f"hard_rss_limit_mb={hard_rss_limit_mb}"

    options = current
    if "hard_rss_limit_mb" not in options:
        options = f"{options},hard_rss_limit_mb={hard_rss_limit_mb}"
    if options.startswith(","):
        options = options[1:]
    return options.replace("symbolize=0", "symbolize=1")


def build_target_env(config: TriageguyConfig, base_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    env = dict(os.environ if base_env is None else base_env)
    env["ASAN_OPTIONS"] = build_asan_options(env.get("ASAN_OPTIONS"), config.asan_hard_rss_limit_mb)
    return env


def disable_aslr():
    """Runs in the child between fork and exec."""
    libc = ctypes.CDLL(None, use_errno=True)
    libc.personality.argtypes = [ctypes.c_ulong]
    libc.personality.restype = ctypes.c_int
    persona = libc.personality(PERSONALITY_QUERY)
    if persona == -1 or libc.personality(persona | ADDR_NO_RANDOMIZE) == -1:
        errno = ctypes.get_errno()
        raise OSError(errno, f"personality(ADDR_NO_RANDOMIZE) failed: {os.strerror(errno)}")


class TargetRunner:
    def __init__(self, config: Optional[TriageguyConfig] = None):
        self.config = config or TriageguyConfig()

    def run(self, argv: List[str], stdin_file: Optional[Union[str, Path]] = None) -> TargetResult:
        if stdin_file is not None and not Path(stdin_file).is_file():
            raise FileNotFoundError(f"Stdin file {stdin_file} does not exist")

        env = build_target_env(self.config)
        log.info("Running target %s (ASAN_OPTIONS=%s)", argv, env["ASAN_OPTIONS"])

        stdin = open(stdin_file, 'rb') if stdin_file is not None else subprocess.DEVNULL
        try:
            p = subprocess.run(
                argv,
                stdin=stdin,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                env=env,
                preexec_fn=disable_aslr,
            )
        except subprocess.SubprocessError as e:
            raise ExternalToolFailure(f"Could not disable address space randomization for {argv[0]}: {e}") from e
        except OSError as e:
            raise ExternalToolFailure(f"Failed to run {argv[0]}: {e}") from e
        finally:
            if stdin_file is not None:
                stdin.close()

        result = TargetResult(argv=list(argv), stderr=p.stderr)
        if p.returncode < 0:
            result.signal = -p.returncode
            log.info("Target terminated by signal %d", result.signal)
        else:
            result.exit_code = p.returncode
            log.info("Target exited with code %d", p.returncode)

        if OOM_MARKER in result.stderr:
            raise TargetOutOfMemory(f"{argv[0]} exhausted the hard rss limit of {self.config.asan_hard_rss_limit_mb} MB")
        return result
