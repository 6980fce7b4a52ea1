"""Errors raised when a compliance gate blocks an action."""


class ComplianceBlocked(ValueError):
    """An action was refused by a hold or a missing SOP acknowledgment.

    ``code`` is ``HOLD_ACTIVE`` or ``SOP_REQUIRED``; ``extra`` carries
    identifiers the client can show (hold id, governed action, ...).
    """

    HOLD_ACTIVE = "HOLD_ACTIVE"
    SOP_REQUIRED = "SOP_REQUIRED"

    def __init__(self, message, *, code, **extra):
        super().__init__(message)
        self.code = code
        self.extra = extra

    def as_dict(self):
        payload = {"detail": str(self), "code": self.code}
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload
