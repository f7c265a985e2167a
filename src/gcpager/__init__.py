"""
Paged listings over the Google Cloud REST APIs.

Every list call in storage, logging and bigquery hands back one page of
results plus a token for the next one.  Page wraps that so you can step
through pages by hand with next() or just iterate everything with all(),
optionally capping how many requests that is allowed to make.

The service modules (storage, cloudlogging, bigquery) are thin: a dataclass
per resource and a list_* function returning the first Page.  Credentials
and the discovery services come from the gcp singleton in access.
"""

from .errors import PagerError, InvalidResponseError, PreconditionError
from .fetchers import Fetcher, ListingResponse, ListMethodFetcher
from .page import Page
from .access import gcp
