"""State management errors."""


class StateError(Exception):
    """Base exception for completion markers and run state."""


class RunStateError(StateError):
    """Raised when a run attempts a transition the phase machine forbids."""
