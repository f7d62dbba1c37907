"""Error types and the recoverable error state shared by repositories."""


class WatchTalkError(Exception):
    """Base class for all WatchTalk errors."""

    # Key into watchtalk.messages for the user-facing text
    message_key: str | None = None


class AuthenticationRequired(WatchTalkError):
    """A write was attempted without an authenticated actor."""
    message_key = "auth_required"


class OwnershipError(WatchTalkError):
    """A mutation was attempted by someone other than the author."""

    def __init__(self, message_key: str, detail: str = ""):
        super().__init__(detail or message_key)
        self.message_key = message_key


class NotFoundError(WatchTalkError):
    """The discussion or reply addressed does not exist."""

    def __init__(self, message_key: str, detail: str = ""):
        super().__init__(detail or message_key)
        self.message_key = message_key


class StoreError(WatchTalkError):
    """A store call was rejected (I/O failure, malformed data)."""


class CatalogError(WatchTalkError):
    """The catalog provider could not resolve metadata."""


class ErrorState:
    """Holds the last failure of a repository as a localized message.

    Errors raised inside an operation are recovered here and never
    propagate past the repository boundary.
    """

    locale: str

    def __init__(self) -> None:
        self.error: str | None = None
        self.error_kind: type[WatchTalkError] | None = None

    def clear_error(self) -> None:
        self.error = None
        self.error_kind = None

    def record_error(self, exc: WatchTalkError, fallback_key: str) -> None:
        """Store the localized message for exc (or fallback_key when exc has none)."""
        from watchtalk.messages import get_message

        key = exc.message_key or fallback_key
        self.error = get_message(key, self.locale)
        self.error_kind = type(exc)
