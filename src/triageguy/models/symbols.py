from pathlib import Path
from typing import Optional, Union

from pydantic import Field, model_validator

from triageguy.models.base import TriageguyBaseModel


class BinaryLocation(TriageguyBaseModel):
    full_binary_path: Path = Field(description="The full path to the module the frame belongs to")
    file_name: Optional[Path] = Field(default=None, description="The name of the module")
    offset: int = Field(description="The offset of the faulting address inside the module")
    function_name: Optional[str] = Field(default=None, description="The name of the function, if the frame carried one")

    @model_validator(mode='after')
    def sanity_check_model(self) -> "BinaryLocation":
        if not self.file_name:
            self.file_name = Path(self.full_binary_path.name)
        if self.offset < 0:
            raise ValueError(f'Negative offset {self.offset:#x} in {self.full_binary_path}')
        return self

    def __str__(self):
        return f"{self.full_binary_path}+{self.offset:#x}"


class SourceLocation(TriageguyBaseModel):
    full_file_path: Path = Field(description="The path of the source file as printed by the upstream tool")
    file_name: Optional[Path] = Field(default=None, description="The name of the file where the crash occurred")
    function_name: Optional[str] = Field(default=None, description="The name of the function")
    line_number: int = Field(description="The line number")
    column: Optional[int] = Field(default=None, description="The column, when the upstream tool printed one")

    @model_validator(mode='after')
    def sanity_check_model(self) -> "SourceLocation":
        if not self.file_name:
            self.file_name = Path(self.full_file_path.name)
        if '/' in str(self.file_name):
            raise ValueError('File name contains a slash')
        if self.line_number <= 0:
            raise ValueError(f'Invalid line number {self.line_number} for {self.full_file_path}')
        return self

    def __str__(self):
        if self.column:
            return f"{self.full_file_path}:{self.line_number}:{self.column}"
        return f"{self.full_file_path}:{self.line_number}"


CrashLine = Union[SourceLocation, BinaryLocation]
