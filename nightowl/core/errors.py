"""Exception types shared by the supervisor services."""


class StartupError(RuntimeError):
    """Fatal problem detected before any background loop starts."""


class RconError(RuntimeError):
    """An RCON command could not be executed or returned a failure status."""
