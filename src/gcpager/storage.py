from dataclasses import dataclass, field
import datetime
from functools import partial
from typing import Self

from .access import gcp, require_service
from .fetchers import ListMethodFetcher
from .page import Page
from .resources import CloudResourceBase

_get_service = partial(require_service, "storage", "v1")

def _timestamp(value: datetime.datetime|str|None) -> datetime.datetime|None:
    if value is None or isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(str(value))

@dataclass
class File(CloudResourceBase):
    """
    https://cloud.google.com/storage/docs/json_api/v1/objects#resource
    Just the commonly used fields, the rest are ignored on decode.
    """
    name: str|None = field(default=None)
    bucket: str|None = field(default=None)
    size: int|str|None = field(default=None)
    contentType: str|None = field(default=None)
    generation: str|None = field(default=None)
    md5Hash: str|None = field(default=None)
    etag: str|None = field(default=None)
    timeCreated: datetime.datetime|str|None = field(default=None)
    updated: datetime.datetime|str|None = field(default=None)

    required = ("name",)

    def __post_init__(self) -> None:
        self.fixup()

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        if self:
            return f"gs://{self.bucket}/{self.name}"
        return "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def fixup(self) -> None:
        # int64 fields come over the wire as strings
        if self.size is not None and not isinstance(self.size, int):
            self.size = int(self.size)
        self.timeCreated = _timestamp(self.timeCreated)
        self.updated = _timestamp(self.updated)

@dataclass
class Bucket(CloudResourceBase):
    """
    https://cloud.google.com/storage/docs/json_api/v1/buckets#resource
    """
    name: str|None = field(default=None)
    id: str|None = field(default=None)
    location: str|None = field(default=None)
    storageClass: str|None = field(default=None)
    etag: str|None = field(default=None)
    timeCreated: datetime.datetime|str|None = field(default=None)

    required = ("name",)

    def __post_init__(self) -> None:
        self.fixup()

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        return f"gs://{self.name}" if self else "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def fixup(self) -> None:
        self.timeCreated = _timestamp(self.timeCreated)

    def files(self, prefix: str|None = None, delimiter: str|None = None,
              versions: bool = False, max: int|None = None) -> Page[File]:
        """First page of the files in this bucket, see list_files()."""
        if not self.name:
            raise ValueError("Bucket::files must have a valid name")
        return list_files(self.name, prefix=prefix, delimiter=delimiter,
                          versions=versions, max=max)

    @classmethod
    def get(cls, name: str) -> Self:
        """
        https://cloud.google.com/storage/docs/json_api/v1/buckets/get
        """
        response = _get_service().buckets().get(bucket=str(name)).execute()
        return cls.from_api(response)

def list_buckets(project: str|None = None, prefix: str|None = None,
                 max: int|None = None) -> Page[Bucket]:
    """
    https://cloud.google.com/storage/docs/json_api/v1/buckets/list
    First page of the project's buckets.  project defaults to the one the
    credentials came with.
    """
    p = project or gcp.project
    if not p:
        raise ValueError("list_buckets requires a project")
    fetcher = ListMethodFetcher(_get_service().buckets().list, "items",
                                project=p, prefix=prefix)
    return Page.first(fetcher, Bucket.from_api, max)

def list_files(bucket: str|Bucket, prefix: str|None = None,
               delimiter: str|None = None, versions: bool = False,
               max: int|None = None) -> Page[File]:
    """
    https://cloud.google.com/storage/docs/json_api/v1/objects/list
    First page of the objects in a bucket.  Use .all() on the result to
    walk the lot, with a request_limit if the bucket is big.
    """
    name = bucket.name if isinstance(bucket, Bucket) else str(bucket)
    if not name:
        raise ValueError("list_files requires a bucket name")
    fetcher = ListMethodFetcher(_get_service().objects().list, "items",
                                bucket=name, prefix=prefix, delimiter=delimiter,
                                versions=versions or None)
    return Page.first(fetcher, File.from_api, max)
