"""Exception taxonomy for the control panel.

    OpenError            -> serial port could not be opened (panel keeps serving, degraded)
    WriteError           -> write to an open port failed or timed out
    ReadError            -> read from an open port failed (logged by reader, never raised to callers)
    NotConnectedError    -> device command issued without an open port (HTTP 400)
    InvalidArgumentError -> bad command argument, e.g. difficulty level (HTTP 400)
"""


class PanelError(Exception):
    """Base class for all control panel errors."""


class OpenError(PanelError):
    pass


class WriteError(PanelError):
    pass


class ReadError(PanelError):
    pass


class NotConnectedError(PanelError):
    def __init__(self, msg: str = "Device not connected") -> None:
        super().__init__(msg)


class InvalidArgumentError(PanelError, ValueError):
    pass
