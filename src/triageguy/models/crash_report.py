import logging
import platform
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ConfigDict, Field

from triageguy.models.base import TriageguyBaseModel
from triageguy.models.execution_class import EXECUTION_CLASSES, UNDEFINED_CLASS_NAME, ExecutionClass

log = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


def _default_execution_class() -> ExecutionClass:
    return EXECUTION_CLASSES[UNDEFINED_CLASS_NAME]


def parse_os_release(text: str) -> Dict[str, str]:
    info = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        info[key] = value.strip().strip('"').strip("'")
    return info


class CrashReport(TriageguyBaseModel):
    """
    The `.casrep` document. Field aliases are the on-disk names and must stay stable:
    every list is always serialized, even when empty, so reports produced by the
    sanitizer path and by the signal path share one schema.
    """
    model_config = ConfigDict(populate_by_name=True)

    date: str = Field(alias="Date", default="")
    uname: str = Field(alias="Uname", default="")
    os: str = Field(alias="OS", default="")
    os_release: str = Field(alias="OSRelease", default="")
    architecture: str = Field(alias="Architecture", default="")
    executable_path: str = Field(alias="ExecutablePath", default="")
    proc_cmdline: str = Field(alias="ProcCmdline", default="")
    stdin: str = Field(alias="Stdin", default="")
    proc_maps: List[str] = Field(alias="ProcMaps", default_factory=list)
    execution_class: ExecutionClass = Field(alias="CrashSeverity", default_factory=_default_execution_class)
    stacktrace: List[str] = Field(alias="Stacktrace", default_factory=list)
    asan_report: List[str] = Field(alias="AsanReport", default_factory=list)
    crashline: str = Field(alias="CrashLine", default="")
    source: List[str] = Field(alias="Source", default_factory=list)

    def add_identity(self, argv: List[str], stdin_file: Optional[Union[str, Path]] = None):
        self.executable_path = argv[0]
        self.proc_cmdline = " ".join(argv)
        if stdin_file is not None:
            self.stdin = str(stdin_file)

    def add_os_info(self, os_release_path: Path = OS_RELEASE_PATH):
        self.date = datetime.now().astimezone().strftime(DATE_FORMAT)
        uname = platform.uname()
        self.uname = " ".join(
            x for x in (uname.system, uname.node, uname.release, uname.version, uname.machine) if x
        )
        self.architecture = uname.machine
        try:
            info = parse_os_release(Path(os_release_path).read_text())
        except OSError as e:
            log.warning("Could not read %s: %s", os_release_path, e)
            return
        self.os = info.get("ID", "")
        self.os_release = info.get("VERSION_ID", "")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=4)

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "CrashReport":
        return cls.model_validate_json(data)
