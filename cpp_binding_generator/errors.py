"""
Error taxonomy for binding generation
"""


class BindingGenerationError(Exception):
    """Base class for errors that abort a generation run"""

    def __init__(self, message: str, type_name: str | None = None, attribute: str | None = None):
        self.message = message
        self.type_name = type_name
        self.attribute = attribute
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.type_name:
            context.append(f"type '{self.type_name}'")
        if self.attribute:
            context.append(f"attribute '{self.attribute}'")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class CyclicDependencyError(BindingGenerationError):
    """A structural dependency cycle was found while ordering declarations"""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic dependency graph encountered: {' -> '.join(cycle)}", type_name=cycle[0])


class MalformedAttributeError(BindingGenerationError, ValueError):
    """A custom attribute has the wrong argument count or argument type"""


class UnsupportedLayoutError(BindingGenerationError):
    """Explicit-layout union member or multi-dimensional array"""


class InvariantViolation(AssertionError):
    """Internal consistency check failed; indicates a generator defect"""


class VerificationError(BindingGenerationError):
    """Generated header did not parse cleanly"""

    def __init__(self, header: str, diagnostics: list[str]):
        self.diagnostics = diagnostics
        super().__init__(f"Generated header failed verification: {'; '.join(diagnostics)}")
        self.header = header
