"""Error taxonomy. Filesystem failures are left as the built-in ``OSError``."""
from __future__ import annotations
from pathlib import Path


class SchemaAgentError(Exception):
    """Base class for every error the CLI turns into a diagnostic + exit code."""


class InvalidProfile(SchemaAgentError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unknown concept: {value!r}")


class FragmentParseError(SchemaAgentError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class FragmentMergeError(SchemaAgentError):
    """Raised once per merge run, after every fragment group has been attempted."""

    def __init__(self, failures: list[Exception]):
        self.failures = list(failures)
        lines = [f"{len(self.failures)} fragment group(s) failed to merge:"]
        lines += [f"  - {f}" for f in self.failures]
        super().__init__("\n".join(lines))


class ModelInconsistency(SchemaAgentError):
    pass
