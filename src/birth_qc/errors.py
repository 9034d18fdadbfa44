"""
Error taxonomy for the birth-weight QC report.

Data-quality findings are never raised: they are collected as Issue objects
by the anomaly detector. Everything below is terminal for a run.
"""


class BirthQCError(Exception):
    """Base class for every error raised by this package."""


class LoadError(BirthQCError, ValueError):
    """Input file missing, unreadable, or not matching the expected columns."""


class CleaningError(BirthQCError, ValueError):
    """An issue references a record or column that does not exist."""


class InsufficientGroupsError(BirthQCError, ValueError):
    """A two-group test did not get exactly two non-empty groups."""

    def __init__(self, column: str, levels):
        self.column = column
        self.levels = list(levels)
        super().__init__(
            f"Column '{column}' must have exactly 2 non-empty levels, "
            f"got {len(self.levels)}: {self.levels}"
        )


class EmptyGroupError(BirthQCError, ValueError):
    """A category combination in a frequency table has zero members."""

    def __init__(self, combinations):
        self.combinations = list(combinations)
        super().__init__(f"Empty category combinations: {self.combinations}")


class StatisticalTestError(BirthQCError, ValueError):
    """Preconditions of a statistical test are not met."""

    def __init__(self, test: str, column: str, reason: str, group=None):
        self.test = test
        self.column = column
        self.group = group
        self.reason = reason
        where = f"'{column}'" if group is None else f"'{column}' (group {group!r})"
        super().__init__(f"{test} on {where}: {reason}")


class StratificationError(BirthQCError, ValueError):
    """A test was asked to stratify by the column it groups on."""


class PipelineError(BirthQCError):
    """Wraps the first failure of a run together with the stage it came from."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause}")


class EmptyGroupWarning(UserWarning):
    """Emitted when a frequency table keeps a zero-count combination."""
