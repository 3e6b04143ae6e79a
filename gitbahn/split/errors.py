"""Exception classes for the decomposition engine.

Contains:
- SplitError: Base exception for decomposition errors
- InvalidScheduleError: Malformed duration/start time, or impossible pacing
- ChunkParseError: A language profile could not find chunk boundaries
- UnsatisfiableTargetCommitsError: The requested commit count cannot be reached
- InvariantViolationError: A changed line is unaccounted for or duplicated
- UndoRangeError: An undo request exceeds what the session created
"""


class SplitError(Exception):
    """Base exception for commit decomposition errors."""

    pass


class InvalidScheduleError(SplitError):
    """Raised when a duration, start time or gap bound cannot be used."""

    pass


class ChunkParseError(SplitError):
    """Raised when a file's content cannot be divided into logical chunks."""

    pass


class UnsatisfiableTargetCommitsError(SplitError):
    """Describes a target commit count that assembly could not reach.

    Carried on the assembly result rather than raised.
    """

    def __init__(self, requested: int, achieved: int):
        self.requested = requested
        self.achieved = achieved
        super().__init__(
            f"Requested {requested} commits but only {achieved} could be formed"
        )


class InvariantViolationError(SplitError):
    """Raised when the commit groups do not partition the changeset exactly."""

    pass


class UndoRangeError(SplitError):
    """Raised when an undo count is out of range for the current session."""

    pass
