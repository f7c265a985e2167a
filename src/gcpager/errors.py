"""
Exceptions raised by gcpager itself.
Failures coming back from the API (googleapiclient.errors.HttpError and the
like) are never wrapped, callers see them exactly as the client raised them.
"""

class PagerError(Exception):
    """Base for everything gcpager raises on its own."""
    pass

class InvalidResponseError(PagerError, ValueError):
    """
    A listing response could not be turned into a page, either the payload
    itself is malformed or decoding one of its items failed.
    """
    pass

class PreconditionError(PagerError, RuntimeError):
    """A page was asked to fetch without a service to fetch from."""
    pass
