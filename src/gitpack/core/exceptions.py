"""
Custom exceptions for gitpack.

Exception Hierarchy:
    GitpackError (base)
    ├── PreconditionError (git executable missing)
    ├── SpecError (invalid package specification)
    ├── ConflictError (two specs for one path disagree)
    ├── ResolutionError (version constraint cannot be satisfied)
    ├── ProcessError (git invocation failed or timed out)
    └── PackageOperationError (per-package failures collected after a call)

PreconditionError, SpecError and ConflictError abort a call before any
package work is scheduled. ResolutionError and ProcessError are scoped to
one package: the scheduler stores their message in that package's state and
keeps processing siblings.

Example:
    >>> from gitpack.core.exceptions import ConflictError
    >>> try:
    ...     raise ConflictError("plugin", "source", "https://a", "https://b")
    ... except ConflictError as e:
    ...     print(e.field)
    source
"""


class GitpackError(Exception):
    """
    Base exception for all gitpack errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class PreconditionError(GitpackError):
    """Raised when the environment cannot run gitpack at all (no git)."""


class SpecError(GitpackError):
    """Raised when a package specification is malformed."""


class ConflictError(GitpackError):
    """
    Raised when two specifications resolve to the same path but disagree.

    Attributes:
        name: Package name both specifications resolve to
        field: Which field conflicts ("source" or "version")
        first: Value from the specification seen first
        second: Value from the conflicting specification
    """

    def __init__(self, name: str, field: str, first: object, second: object) -> None:
        message = f"Conflicting `{field}` for `{name}`:\n{first}\n{second}"
        super().__init__(message, name=name, field=field)
        self.name = name
        self.field = field
        self.first = first
        self.second = second


class ResolutionError(GitpackError):
    """Raised when a version constraint cannot be matched to a git reference."""


class ProcessError(GitpackError):
    """
    Raised when a git invocation exits non-zero or times out.

    Attributes:
        argv: The command line that failed
        exit_code: Process exit code (-1 for timeout)
        stderr: Captured standard error
    """

    def __init__(self, argv: list[str], exit_code: int, stderr: str) -> None:
        message = stderr or f"Command failed with exit code {exit_code}: {' '.join(argv)}"
        super().__init__(message, argv=argv, exit_code=exit_code)
        self.argv = argv
        self.exit_code = exit_code
        self.stderr = stderr


class PackageOperationError(GitpackError):
    """
    Raised after a call finished processing healthy packages but some failed.

    Attributes:
        operation: Name of the operation ("install", "update", ...)
        errors: Mapping of package name to its accumulated error text
    """

    def __init__(self, operation: str, errors: dict[str, str]) -> None:
        parts = [
            f"Error in `{name}` during {operation}:\n{text}" for name, text in errors.items()
        ]
        super().__init__("\n\n".join(parts), operation=operation)
        self.operation = operation
        self.errors = errors
