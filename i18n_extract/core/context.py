"""Per-block planning state shared by the template and script planners."""

from dataclasses import dataclass
from typing import Optional, Pattern

from .key_registry import KeyRegistry, canonical_value
from .types import Location
from ..utils.config import TransformOptions


@dataclass
class PlanningContext:
    registry: KeyRegistry
    options: TransformOptions
    file_path: str = ""
    call_name: str = "t"
    # number of lines in the file before the planned block
    line_offset: int = 0

    @property
    def pattern(self) -> Pattern:
        return self.registry.pattern

    @property
    def with_comment(self) -> bool:
        return self.options.append_extracted_comment

    def resolve(self, matched_value: str, line: int, column: int) -> Optional[str]:
        location = Location(self.file_path, line + self.line_offset, column)
        return self.registry.resolve(matched_value, location)

    def value_of(self, matched_value: str) -> str:
        """The text payload of a match, used for extracted-value comments."""
        match = self.pattern.search(matched_value)
        return canonical_value(match.group(1)) if match else matched_value
