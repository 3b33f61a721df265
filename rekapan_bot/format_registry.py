"""Format registry - loads input formats and classifies pasted text."""

import importlib
import logging
from pathlib import Path
from types import ModuleType
from typing import Callable, Dict, List, Optional, Tuple

from .schemas import FormatTag

Predicate = Callable[[str], bool]

REQUIRED_ATTRS = ["FORMAT_TAG", "PRIORITY", "MARKERS", "DESCRIPTION", "extract_fields"]


def contains_any(markers: List[str]) -> Predicate:
    """Case-insensitive substring test against any of ``markers``."""
    upper_markers = [marker.upper() for marker in markers]

    def predicate(text: str) -> bool:
        upper = text.upper()
        return any(marker in upper for marker in upper_markers)

    return predicate


def always(text: str) -> bool:
    return True


class FormatRegistry:
    """Registry that loads formats from the formats/ folder and orders them by priority."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.formats: Dict[FormatTag, ModuleType] = {}
        self.rules: List[Tuple[Predicate, FormatTag]] = []

        self._load_formats()

    def _load_formats(self):
        """Load all format definitions from the formats/ folder."""
        formats_dir = Path(__file__).parent / "formats"
        package = f"{__package__}.formats"

        loaded: List[ModuleType] = []
        for format_file in sorted(formats_dir.glob("*.py")):
            if format_file.name == "__init__.py":
                continue

            module = importlib.import_module(f"{package}.{format_file.stem}")
            missing = [attr for attr in REQUIRED_ATTRS if not hasattr(module, attr)]
            if missing:
                self.logger.error(f"Format {format_file.stem} missing required attributes: {', '.join(missing)}")
                continue
            loaded.append(module)

        loaded.sort(key=lambda module: module.PRIORITY)
        for module in loaded:
            tag = FormatTag(module.FORMAT_TAG)
            if tag in self.formats:
                raise ValueError(f"Duplicate format tag {tag.value} in {module.__name__}")
            self.formats[tag] = module
            predicate = contains_any(module.MARKERS) if module.MARKERS else always
            self.rules.append((predicate, tag))
            self.logger.debug(f"Registered format: {tag.value} (priority {module.PRIORITY})")

        if not self.rules or self.rules[-1][0] is not always:
            raise ValueError("Formats need a marker-less fallback with the highest priority")

    def classify(self, raw_text: str) -> FormatTag:
        """Return the tag of the first rule whose predicate accepts the text."""
        for predicate, tag in self.rules:
            if predicate(raw_text):
                return tag
        # Unreachable while the fallback rule is registered
        return FormatTag.MANUAL

    def get_format(self, tag: FormatTag) -> ModuleType:
        return self.formats[tag]

    def list_formats(self) -> Dict[str, dict]:
        return {
            tag.value: {
                "priority": module.PRIORITY,
                "markers": list(module.MARKERS),
                "description": module.DESCRIPTION,
            }
            for tag, module in self.formats.items()
        }
