from __future__ import annotations


class PathError(ValueError):
    pass


class NoteLookupError(LookupError):
    """Existence lookup against the note store could not be answered."""

    def __init__(self, reason: str, detail: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


class TemplateVariablesMissing(ValueError):
    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__("missing required template variables: " + ", ".join(names))
