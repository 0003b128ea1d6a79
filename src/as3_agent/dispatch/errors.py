"""Exceptions raised by the AS3 agent."""


class AgentError(Exception):
    """Base error for the AS3 agent."""
    pass


class StartupError(AgentError):
    """Initialization failed; the agent must not start posting."""
    pass


class VersionParseError(StartupError):
    """The control plane reported a version string that cannot be parsed."""
    pass


class IncompatibleVersionError(StartupError):
    """The AS3 extension on the control plane is older than supported."""

    def __init__(self, found: float, minimum: float):
        self.found = found
        self.minimum = minimum
        super().__init__(
            f"AS3 agent is compatible with AS3 versions >= {minimum}. "
            f"Upgrade AS3 version in BIG-IP from {found} to {minimum} or above."
        )


class QueueClosedError(AgentError):
    """The dispatch queue was closed; no further submissions are accepted."""
    pass
