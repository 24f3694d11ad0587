"""
Main C++ bindings generator orchestration
"""

import re
import sys
from pathlib import Path

from .code_generators import CodeGenerator, OutputBuilder
from .constants import BASE_HEADER, DEFAULT_HEADER, ROOT_INTERFACE, ROOT_NAMESPACE
from .dependency_sorter import DependencySorter
from .metadata import TypeKind
from .signatures import SignatureClassifier


IMPL_NAMESPACE = f"{ROOT_NAMESPACE}::_impl_"


def _matches(pattern: str, is_regex: bool, value: str) -> bool:
    if is_regex:
        return re.fullmatch(pattern, value) is not None
    return pattern == value


class CppBindingsGenerator:
    """Main orchestrator for generating C++ bindings from a metadata database"""

    def __init__(self, database, root_interface: str = ROOT_INTERFACE):
        self.database = database
        self.classifier = SignatureClassifier(database)
        self.code_generator = CodeGenerator(self.classifier, root_interface)
        self.removals = []  # (pattern, is_regex)

    def add_removal(self, pattern: str, is_regex: bool = False):
        """Exclude types whose name or full name matches pattern"""
        self.removals.append((pattern, is_regex))

    def add_flag_enum(self, pattern: str, is_regex: bool = False):
        self.code_generator.add_flag_enum(pattern, is_regex)

    def is_removed(self, entry) -> bool:
        for pattern, is_regex in self.removals:
            if _matches(pattern, is_regex, entry.name) or _matches(pattern, is_regex, entry.full_name):
                return True
        return False

    def select_namespaces(self, patterns: list[tuple[str, bool]]) -> list:
        """Return the types of every namespace matching one of patterns

        An empty pattern list selects every namespace.
        """
        selected = []
        for namespace in self.database.namespaces():
            if patterns and not any(_matches(pattern, is_regex, namespace) for pattern, is_regex in patterns):
                continue
            print(f"Processing namespace: {namespace}")
            selected.extend(self.database.types_in(namespace))
        return selected

    def _requested(self, types) -> list:
        requested = []
        seen = set()
        for entry in types:
            # Nested types are written inside their enclosing type
            if entry in seen or entry.is_nested or self.is_removed(entry):
                continue
            seen.add(entry)
            requested.append(entry)
        return requested

    @staticmethod
    def _declaration(entry, text: str):
        return (OutputBuilder.cpp_namespace(entry.namespace), text)

    def _sorted_declarations(self, requested: list, kind: TypeKind, add, emit) -> list:
        """Dependency-order the requested types of one kind and emit them"""
        sorter = DependencySorter(self.database)
        candidates = [entry for entry in requested if entry.kind is kind]
        for entry in candidates:
            add(sorter, entry)

        wanted = set(candidates)
        return [
            self._declaration(entry, emit(entry))
            for entry in sorter.sort()
            if entry in wanted
        ]

    def generate(self, types, output: str | None = None, header_name: str = DEFAULT_HEADER) -> dict[str, str]:
        """Generate C++ bindings for a batch of types

        Args:
            types: TypeEntry handles to generate declarations for
            output: Optional output directory; nothing is written if generation fails
            header_name: File name of the generated header

        Returns:
            Dictionary mapping file names to their content
        """
        generator = self.code_generator
        generator.skipped_members.clear()

        requested = self._requested(types)
        enums = [entry for entry in requested if entry.kind is TypeKind.ENUM]
        structs = [entry for entry in requested if entry.kind is TypeKind.STRUCT]
        interfaces = [entry for entry in requested if entry.kind is TypeKind.INTERFACE]
        classes = [entry for entry in requested if entry.kind is TypeKind.CLASS]

        enum_section = [
            self._declaration(entry, generator.generate_enum(entry) + generator.generate_enum_operators(entry))
            for entry in enums
        ]
        forward_section = [self._declaration(entry, generator.generate_forward(entry)) for entry in structs]
        delegate_section = self._sorted_declarations(
            requested, TypeKind.DELEGATE, DependencySorter.add_delegate, generator.generate_delegate)
        struct_section = self._sorted_declarations(
            requested, TypeKind.STRUCT, DependencySorter.add_struct, generator.generate_struct)
        interface_section = self._sorted_declarations(
            requested, TypeKind.INTERFACE, DependencySorter.add_interface, generator.generate_interface)
        guid_section = [(ROOT_NAMESPACE, generator.generate_guid(entry)) for entry in interfaces]
        abi_section = [(None, generator.generate_class_abi(entry)) for entry in classes]

        helpers = set()
        batch = set(classes)
        raii_section = [
            self._declaration(entry, generator.generate_raii_helpers(entry, helpers, batch)) for entry in classes
        ]
        class_section = [self._declaration(entry, generator.generate_class(entry)) for entry in classes]
        consume_section = [(IMPL_NAMESPACE, generator.generate_consume(entry)) for entry in interfaces]

        for type_name, member in generator.skipped_members:
            print(f"Warning: skipped explicit-layout union member '{member}' in {type_name}", file=sys.stderr)

        content = OutputBuilder.build([
            enum_section,
            forward_section,
            delegate_section,
            struct_section,
            interface_section,
            guid_section,
            abi_section,
            raii_section,
            class_section,
            consume_section,
        ])
        files = {
            header_name: content,
            BASE_HEADER: OutputBuilder.build_base(),
        }

        if output:
            output_path = Path(output)
            output_path.mkdir(parents=True, exist_ok=True)
            for file_name, file_content in files.items():
                file_path = output_path / file_name
                file_path.write_text(file_content)
                print(f"Generated bindings: {file_path}")
        return files

    def generate_namespaces(self, patterns: list[tuple[str, bool]], output: str | None = None,
                            header_name: str = DEFAULT_HEADER) -> dict[str, str]:
        """Generate bindings for every type in the matching namespaces"""
        return self.generate(self.select_namespaces(patterns), output=output, header_name=header_name)
