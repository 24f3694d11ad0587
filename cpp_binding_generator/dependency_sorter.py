"""
Dependency graph building and topological ordering of declarations
"""

from dataclasses import dataclass, field

from .constants import DELEGATE_INVOKE
from .errors import CyclicDependencyError, InvariantViolation
from .metadata import TypeKind


@dataclass
class DependencyNode:
    entry: object
    edges: list = field(default_factory=list)
    on_path: bool = False
    finalized: bool = False

    def add_edge(self, entry):
        # Edge lists stay short, so a linear scan is fine
        if entry not in self.edges:
            self.edges.append(entry)


def get_delegate_method(entry):
    """Return the Invoke method carrying a delegate's signature"""
    for method in entry.methods:
        if method.name == DELEGATE_INVOKE:
            return method
    return None


class DependencySorter:
    """Orders structs, delegates or interfaces so dependencies come first

    One sorter holds one graph; every add_* call shares it, and inserting an
    entry that is already known does nothing.
    """

    def __init__(self, database):
        self.database = database
        self.nodes: dict = {}

    def _resolve(self, sig):
        if sig is None or sig.type_ref is None:
            return None
        return self.database.resolve(sig.type_ref)

    def _build(self, root, dependencies):
        pending = [root]
        while pending:
            entry = pending.pop()
            if entry in self.nodes:
                continue
            node = self.nodes[entry] = DependencyNode(entry)
            found = list(dependencies(entry))
            for dependency in found:
                node.add_edge(dependency)
            # Reversed so dependencies are inserted in declaration order
            pending.extend(reversed(found))

    def _struct_dependencies(self, entry):
        for struct_field in entry.fields:
            sig = struct_field.signature
            if sig.type_ref is None:
                continue
            if sig.ptr_count == 0 or sig.type_ref.is_nested:
                dependency = self._resolve(sig)
                if dependency is None or dependency.kind is TypeKind.ENUM:
                    continue
                # Indirection never orders a type after itself
                if dependency == entry and sig.ptr_count > 0:
                    continue
                yield dependency

    def _delegate_dependencies(self, entry):
        method = get_delegate_method(entry)
        if method is None:
            return
        signatures = [method.return_type] + [param.signature for param in method.params]
        for sig in signatures:
            dependency = self._resolve(sig)
            if dependency is not None and dependency.kind is TypeKind.DELEGATE:
                yield dependency

    def _interface_dependencies(self, entry):
        if entry.base is None:
            return
        base = self.database.resolve(entry.base)
        if base is not None:
            yield base

    def add_struct(self, entry):
        """Add a struct/union and everything it embeds by value"""
        self._build(entry, self._struct_dependencies)

    def add_delegate(self, entry):
        """Add a delegate and the delegates its signature refers to"""
        self._build(entry, self._delegate_dependencies)

    def add_interface(self, entry):
        """Add an interface and its base interface chain"""
        self._build(entry, self._interface_dependencies)

    def _visit(self, root, result: list):
        root.on_path = True
        stack = [(root, iter(root.edges))]
        while stack:
            node, edges = stack[-1]
            for edge in edges:
                target = self.nodes.get(edge)
                if target is None:
                    raise InvariantViolation(f"Edge target missing from graph: {edge}")
                if target.finalized:
                    continue
                if target.on_path:
                    cycle = [str(n.entry) for n, _ in stack]
                    cycle = cycle[cycle.index(str(target.entry)):] + [str(target.entry)]
                    raise CyclicDependencyError(cycle)
                target.on_path = True
                stack.append((target, iter(target.edges)))
                break
            else:
                stack.pop()
                node.on_path = False
                node.finalized = True
                result.append(node.entry)

    def sort(self) -> list:
        """Return every entry in the graph, dependencies before dependents"""
        result = []
        for node in self.nodes.values():
            if not node.finalized:
                self._visit(node, result)
        return result
