"""
A page of results from a listing call.

Every list method in the Cloud APIs works the same way: you get back some
items and, if there are more, a nextPageToken to send back for the next lot.
Page wraps one of those responses together with the fetcher that produced it
so you can step to the next page yourself or just walk everything lazily.

Pages are immutable.  next() never changes the page it is called on, it
hands back a brand new one.
"""
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, Self, TypeVar

from .errors import InvalidResponseError, PreconditionError
from .fetchers import Fetcher

log = logging.getLogger(__name__)

T = TypeVar("T")

def _as_is(raw: Any) -> Any:
    return raw

@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a listing.
    items are in the order the server returned them.  token is None when
    this is the last page, max is the page size requested and gets passed
    along unchanged on every fetch so all pages of a listing are the same size.
    """
    items: tuple[T, ...] = field(default=())
    token: str|None = field(default=None)
    max: int|None = field(default=None)
    fetcher: Fetcher|None = field(default=None, repr=False, compare=False)
    decode: Callable[[Any], T] = field(default=_as_is, repr=False, compare=False)

    # items are usually mutable dataclasses so a page can't be hashed either
    __hash__ = None

    def __post_init__(self) -> None:
        # frozen, so go around __setattr__ for the normalisation
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))
        if not self.token:
            object.__setattr__(self, "token", None)
        if self.max is not None and int(self.max) < 1:
            raise ValueError(f"Invalid Page max: {self.max}")

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int|slice) -> T|tuple[T, ...]:
        return self.items[index]

    def __iter__(self) -> Iterator[T]:
        """Just this page.  Use all() to go past it."""
        return iter(self.items)

    def __contains__(self, item: Any) -> bool:
        return item in self.items

    def __str__(self) -> str:
        more = f"->{self.token}" if self.token else ""
        return f"{len(self.items)} items{more}"

    @classmethod
    def from_response(cls, items: Iterable[Any]|None, token: str|None,
                      fetcher: Fetcher|None, decode: Callable[[Any], T],
                      max: int|None = None) -> Self:
        """
        Build a page from the raw pieces of a listing response.
        Each raw item goes through decode.  If any of them fail the whole page
        fails, there is no such thing as a partial page.
        An empty token is what the APIs send on the last page so treat it
        the same as no token at all.
        """
        decoded = []
        for raw in (items or []):
            try:
                decoded.append(decode(raw))
            except InvalidResponseError:
                raise
            except Exception as e:
                raise InvalidResponseError(f"Unable to decode listing item {raw!r}: {e}") from e
        return cls(tuple(decoded), token or None, max, fetcher, decode)

    @classmethod
    def first(cls, fetcher: Fetcher, decode: Callable[[Any], T],
              max: int|None = None) -> Self:
        """
        Start a listing: fetch with no token and wrap the response.
        """
        if fetcher is None:
            raise PreconditionError("Must have active connection to service")
        if max is not None and int(max) < 1:
            raise ValueError(f"Invalid Page max: {max}")
        response = fetcher(None, max)
        return cls.from_response(response.items, response.next_token, fetcher, decode, max)

    def has_next(self) -> bool:
        """Is there another page after this one?"""
        return self.token is not None

    def next(self) -> Self|None:
        """
        Fetch the page following this one, or None if this is the last page.
        Careful with truth testing the result, a page can legitimately come
        back empty but still have a token so compare against None.
        Anything the fetcher raises goes straight through.
        """
        if not self.has_next():
            return None
        self.ensure_fetcher()
        log.debug("fetching page token=%s max=%s", self.token, self.max)
        response = self.fetcher(self.token, self.max)
        page = self.from_response(response.items, response.next_token,
                                  self.fetcher, self.decode, self.max)
        log.debug("fetched %d items, more=%s", len(page), page.has_next())
        return page

    def pages(self, request_limit: int|None = None) -> Iterator[Self]:
        """
        Lazily walk this page and the ones after it.
        request_limit caps the number of fetches, not pages yielded, so a
        limit of 2 gives at most 3 pages.  0 or less yields only this page.
        The next page is only fetched when the consumer asks for it, so
        stopping early never costs an extra request.
        If a fetch fails the error is raised here.  The last page yielded
        still has its token, which is enough to pick up again by hand.
        """
        remaining = None if request_limit is None else int(request_limit)
        page = self
        while True:
            yield page
            if remaining is not None:
                remaining -= 1
                if remaining < 0:
                    break
            if not page.has_next():
                break
            page = page.next()

    def all(self, request_limit: int|None = None) -> Iterator[T]:
        """
        Every item from this page on, fetching more pages as needed.
        With no request_limit this will keep going until the server runs out,
        which can be a lot of requests so narrow the listing query first.
        """
        for page in self.pages(request_limit):
            yield from page.items

    def each(self, visitor: Callable[[T], Any], request_limit: int|None = None) -> None:
        """
        Same walk as all() but hand each item to visitor.
        """
        for item in self.all(request_limit):
            visitor(item)

    def ensure_fetcher(self) -> None:
        """Raise unless there is something to fetch the next page with."""
        if self.fetcher is None:
            raise PreconditionError("Must have active connection to service")
