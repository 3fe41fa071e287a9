"""Exceptions raised by the membership engine, stores and service."""


class GymError(Exception):
    """Base exception for gym membership errors."""
    pass


class InvalidPlan(GymError):
    """Raised when a membership plan is not one of the known plans."""

    def __init__(self, plan):
        self.plan = plan
        super().__init__(f"Unknown membership plan '{plan}'")


class InvalidStatus(GymError):
    """Raised when a fee status is neither 'paid' nor 'unpaid'."""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Unknown fee status '{status}'")


class AlreadyCheckedIn(GymError):
    """Raised when check_in finds an open session for the same day."""

    def __init__(self, member_id, day):
        self.member_id = member_id
        self.day = day
        super().__init__(f"Member '{member_id}' is already checked in on {day}")


class NoOpenSession(GymError):
    """Raised when check_out finds no open session for the day."""

    def __init__(self, member_id, day):
        self.member_id = member_id
        self.day = day
        super().__init__(f"Member '{member_id}' has no open session on {day}")


class ClockSkew(GymError):
    """Raised when a check-out time precedes its check-in time."""

    def __init__(self, member_id, check_in_time, now):
        self.member_id = member_id
        self.check_in_time = check_in_time
        self.now = now
        super().__init__(
            f"Check-out at {now} precedes check-in at {check_in_time} "
            f"for member '{member_id}'"
        )


class MemberNotFound(GymError):
    """Raised when a store has no member with the given id."""

    def __init__(self, member_id):
        self.member_id = member_id
        super().__init__(f"Member '{member_id}' not found")


class ValidationError(GymError):
    """Raised when member input fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class StoreError(GymError):
    """Raised when a store backend fails (I/O, HTTP, unexpected response)."""
    pass


class ConfigError(GymError):
    """Raised when configuration values are invalid."""
    pass
