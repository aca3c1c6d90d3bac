"""Exception hierarchy: capture failures are transient, session guards reject the trigger."""


class SnapsightError(Exception):
    pass


# ── capture ───────────────────────────────────────────────────────────────────


class CaptureError(SnapsightError):
    """Raised by a CaptureAdapter; the user may retry."""


class CaptureNotReadyError(CaptureError):
    pass


class CaptureFailedError(CaptureError):
    pass


class DeviceUnavailableError(CaptureError):
    """Camera backend or hardware is missing altogether."""


# ── session guards ────────────────────────────────────────────────────────────


class SessionError(SnapsightError):
    pass


class AccessBlockedError(SessionError):
    pass


class SessionBusyError(SessionError):
    pass


class CycleActiveError(SessionError):
    pass
