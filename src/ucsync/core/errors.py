"""Base exception shared by every ucsync failure surfaced to the CLI."""


class UCSyncError(RuntimeError):
    """Root of the ucsync exception hierarchy."""
