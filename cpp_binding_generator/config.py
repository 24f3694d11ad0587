"""
XML configuration file parsing for C++ bindings generator
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from .constants import DEFAULT_HEADER, ROOT_INTERFACE


@dataclass
class BindingConfig:
    """Configuration for C++ bindings generation"""
    metadata_files: list[str] = field(default_factory=list)
    namespaces: list[tuple[str, bool]] = field(default_factory=list)
    removals: list[tuple[str, bool]] = field(default_factory=list)
    flag_enums: list[tuple[str, bool]] = field(default_factory=list)
    header: str = DEFAULT_HEADER
    root_interface: str = ROOT_INTERFACE


def _patterns(root, tag: str, attribute: str, label: str) -> list[tuple[str, bool]]:
    patterns = []
    for element in root.findall(tag):
        pattern = element.get(attribute)
        if not pattern:
            raise ValueError(f"{label} element missing '{attribute}' attribute")
        is_regex = element.get("regex", "false").lower() == "true"
        patterns.append((pattern.strip(), is_regex))
    return patterns


def parse_config_file(config_path):
    """Parse XML configuration file and return BindingConfig object

    Relative metadata paths are resolved against the config file's directory.
    """
    try:
        tree = ET.parse(config_path)
        root = tree.getroot()

        if root.tag != "bindings":
            raise ValueError(f"Expected root element 'bindings', got '{root.tag}'")

        config = BindingConfig()
        config.header = root.get("header", DEFAULT_HEADER).strip()
        config.root_interface = root.get("root_interface", ROOT_INTERFACE).strip()

        base_dir = Path(config_path).parent
        for metadata in root.findall("metadata"):
            path = metadata.get("file")
            if not path:
                raise ValueError("Metadata element missing 'file' attribute")
            path = Path(path.strip())
            if not path.is_absolute():
                path = base_dir / path
            config.metadata_files.append(str(path))

        # Namespaces to generate (support both simple and regex)
        config.namespaces = _patterns(root, "namespace", "name", "Namespace")

        # Types to leave out
        config.removals = _patterns(root, "remove", "pattern", "Remove")

        # Enums to treat as bit flags in addition to FlagsAttribute
        config.flag_enums = _patterns(root, "flags", "pattern", "Flags")

        return config

    except ET.ParseError as e:
        raise ValueError(f"XML parsing error: {e}")
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
