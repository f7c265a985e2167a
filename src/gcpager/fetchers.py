"""
The only thing a Page knows about the outside world is a fetcher: give it a
continuation token and a page size and it hands back the next raw page.
ListMethodFetcher builds one from a googleapiclient list method so the
resource modules just say which method and which response key.
"""
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from .errors import InvalidResponseError

log = logging.getLogger(__name__)

@dataclass(frozen=True)
class ListingResponse():
    """
    Raw page as it came off the wire, before any decoding.
    next_token is empty (or None) on the last page.
    """
    items: Sequence[Any] = field(default=())
    next_token: str|None = field(default=None)

class Fetcher(Protocol):
    def __call__(self, token: str|None, max: int|None) -> ListingResponse:
        ...

class ListMethodFetcher():
    """
    Adapts a discovery list method, e.g. service.objects().list, into a fetcher.
    query holds the fixed arguments of the listing (bucket, projectId, prefix...)
    and gets sent on every request along with the paging arguments.
    The APIs aren't consistent on what the page size parameter is called,
    storage and bigquery use maxResults, logging uses pageSize.
    """
    def __init__(self, method: Callable[..., Any], items_key: str,
                 page_size_param: str = "maxResults",
                 token_param: str = "pageToken",
                 token_key: str = "nextPageToken",
                 **query) -> None:
        self.method = method
        self.items_key = items_key
        self.page_size_param = page_size_param
        self.token_param = token_param
        self.token_key = token_key
        # never let a stray paging arg in the query fight with ours
        query.pop(token_param, None)
        query.pop(page_size_param, None)
        self.query = {k: v for k, v in query.items() if v is not None}

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{self.items_key}:{self.query}"

    def request_args(self, token: str|None, max: int|None) -> dict:
        args = dict(self.query)
        if token:
            args[self.token_param] = token
        if max is not None:
            args[self.page_size_param] = int(max)
        return args

    def __call__(self, token: str|None, max: int|None) -> ListingResponse:
        args = self.request_args(token, max)
        log.debug("list %s %s", self.items_key, args)
        response = self.method(**args).execute()
        if response is None:
            # some APIs return nothing at all for an empty listing
            response = {}
        if not isinstance(response, Mapping):
            raise InvalidResponseError(f"Listing response for {self.items_key} is not an object: {response!r}")
        items = response.get(self.items_key, [])
        if items is None:
            items = []
        if not isinstance(items, list):
            raise InvalidResponseError(f"Listing response {self.items_key} is not a list: {items!r}")
        return ListingResponse(items, response.get(self.token_key, None))
