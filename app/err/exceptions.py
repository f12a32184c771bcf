"""Simple wrappers for the failure states a scrape cycle can run into"""


class ModemScrapeError(Exception):
    """Base for anything that goes wrong while talking to / parsing the modem."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message, status_code, payload)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def __str__(self):
        return self.message


class TransportError(ModemScrapeError):
    """Exception for connection level failures talking to the modem."""


class ModemNotOkError(TransportError):
    """Exception for non-200/OK responses from modem."""


class MalformedPageError(ModemScrapeError):
    """Exception for pages that are missing structure we can't do without."""


class FieldParseError(ModemScrapeError, ValueError):
    """A single table cell could not be turned into a number. Never fatal."""
