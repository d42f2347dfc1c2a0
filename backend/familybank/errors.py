"""Business error hierarchy for the family bank.

Each error carries a stable ``code`` and the HTTP status the API layer
responds with.  Route handlers let these propagate; the exception handler
registered in :mod:`familybank.main` turns them into JSON bodies.
"""


class BankError(Exception):
    """Base class for errors that are reported to the caller verbatim."""

    code = "bank_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.__doc__.strip().splitlines()[0]
        super().__init__(self.message)


class NotFound(BankError):
    """Resource not found."""

    code = "not_found"
    status_code = 404


class Forbidden(BankError):
    """You do not have permission to perform this action."""

    code = "forbidden"
    status_code = 403


class InsufficientFunds(BankError):
    """Withdrawal exceeds the available balance."""

    code = "insufficient_funds"

    def __init__(self, requested_cents: int, available_cents: int):
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            "Cannot withdraw $%s. Current balance is $%s."
            % (format_cents(requested_cents), format_cents(available_cents))
        )


class ScheduleConflict(BankError):
    """A schedule of this kind already exists for the child."""

    code = "schedule_conflict"
    status_code = 409


class InvalidFrequencyDayCombination(BankError):
    """Frequency must be 'weekly', 'biweekly', or 'monthly'."""

    code = "invalid_frequency"


class AlreadyPaused(BankError):
    """Schedule is already paused."""

    code = "already_paused"


class AlreadyActive(BankError):
    """Schedule is already active."""

    code = "already_active"


class InvalidAmount(BankError):
    """Amount must be between 1 cent and $999,999.99."""

    code = "invalid_amount"


class InvalidNote(BankError):
    """Note must be 500 characters or less."""

    code = "invalid_note"


class InvalidInterestRate(BankError):
    """Interest rate must be between 0% and 100%."""

    code = "invalid_interest_rate"


class NameTaken(BankError):
    """A child with this name already exists in the family."""

    code = "name_taken"
    status_code = 409


class InvalidName(BankError):
    """First name is required."""

    code = "invalid_name"


class InvalidPassword(BankError):
    """Password must be at least 6 characters."""

    code = "invalid_password"


class InvalidSlug(BankError):
    """Slug must be between 3 and 30 characters."""

    code = "invalid_slug"


class AlreadyRegistered(BankError):
    """That email or family slug is already registered."""

    code = "already_registered"
    status_code = 409


class InvalidCredentials(BankError):
    """Invalid credentials."""

    code = "invalid_credentials"
    status_code = 401


def format_cents(cents: int) -> str:
    return "%d.%02d" % divmod(cents, 100)
