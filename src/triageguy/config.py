import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import Field, ValidationError

from triageguy.errors import ConfigError
from triageguy.models.base import TriageguyBaseModel

log = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TRIAGEGUY_CONFIG"

# matched against the frame's function name
DEFAULT_IGNORED_FUNCTION_PATTERNS = [
    # sanitizer runtimes
    r'^__asan(_|::)',
    r'^__sanitizer(_|::)',
    r'^__interceptor_',
    r'^__interception::',
    r'^__lsan(_|::)',
    r'^__ubsan(_|::)',
    # libc internals and process entry
    r'^__libc_start_(main|call_main)$',
    r'^_start$',
    r'^__GI_',
    r'^(__pthread_kill\w*|pthread_kill|gsignal|raise|abort)$',
    r'^__assert_fail',
    # libFuzzer driver
    r'^fuzzer::',
]

# matched against the frame's source file or module path
DEFAULT_IGNORED_PATH_PATTERNS = [
    r'compiler-rt/lib/',
    r'libclang_rt\.',
    r'sanitizer_common',
    r'/libc\.so',
    r'/libc-[0-9.]+\.so',
    r'/libstdc\+\+\.so',
    r'/ld-linux',
]


class TriageguyConfig(TriageguyBaseModel):
    asan_hard_rss_limit_mb: int = Field(default=2048, description="hard_rss_limit_mb added to ASAN_OPTIONS when it is not set")
    source_context_lines: int = Field(default=5, description="Number of source lines shown around the crash line")
    near_null_threshold: int = Field(default=0x10000, description="Fault addresses below this are considered near NULL")
    gdb_command: List[str] = Field(default_factory=lambda: ["gdb", "--nx", "--quiet", "--interpreter=mi3"])
    gdb_response_timeout: float = Field(default=5.0, description="Seconds to wait for each batch of gdb responses")
    ignored_function_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_FUNCTION_PATTERNS))
    ignored_path_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_PATH_PATTERNS))


def load_config(path: Optional[Union[str, Path]] = None) -> TriageguyConfig:
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR, None)
    if not path:
        return TriageguyConfig()

    path = Path(path)
    if not path.is_file():
        log.warning("Config file %s not found, using defaults", path)
        return TriageguyConfig()

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        log.debug("Loaded config from %s: %s", path, data)
        return TriageguyConfig.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e
