"""
Exception hierarchy for mvareg.

Both scoring and training are batch-once jobs with fail-fast semantics:
nothing here is retried. The CLI entry points turn these into exit code 1.
"""


class MvaRegError(Exception):
    """Base class for all mvareg errors."""


class ResourceNotFound(MvaRegError, FileNotFoundError):
    """An input table, weight file or config file does not exist."""

    def __init__(self, path, what: str = 'resource'):
        self.path = str(path)
        self.what = what
        super().__init__(f"Could not open {what}: {self.path}")


class SchemaMismatch(MvaRegError, ValueError):
    """Declared variables are absent from (or disagree with) a source schema."""

    def __init__(self, missing, source: str = 'input table'):
        self.missing = list(missing)
        self.source = source
        super().__init__(
            f"{source} does not match the declared variables: {self.missing}"
        )
