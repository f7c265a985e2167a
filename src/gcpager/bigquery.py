from dataclasses import dataclass, field
import datetime
from functools import partial
from typing import Any

from .access import gcp, require_service
from .errors import InvalidResponseError
from .fetchers import ListMethodFetcher
from .page import Page
from .resources import CloudResourceBase

_get_service = partial(require_service, "bigquery", "v2")

def _project(project: str|None) -> str:
    p = project or gcp.project
    if not p:
        raise ValueError("BigQuery listing requires a project")
    return str(p)

def _millis(value: str|int|None) -> datetime.datetime|None:
    """BigQuery timestamps are milliseconds since the epoch, as strings."""
    if value is None or value == "":
        return None
    return datetime.datetime.fromtimestamp(int(value) / 1000, tz=datetime.timezone.utc)

def _int(value: str|int|None) -> int|None:
    return None if value is None else int(value)

@dataclass(frozen=True)
class SchemaField():
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/tables#TableFieldSchema
    """
    name: str
    type: str
    mode: str = "NULLABLE"
    description: str|None = None
    fields: tuple = ()

    @classmethod
    def from_api(cls, data: dict):
        return cls(name=data['name'], type=data['type'],
                   mode=data.get('mode', "NULLABLE"),
                   description=data.get('description', None),
                   fields=tuple(cls.from_api(f) for f in data.get('fields', [])))

@dataclass
class Table(CloudResourceBase):
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/tables#Table
    tables.list only returns a summary of each table.  Anything beyond that
    pulls the full resource with tables.get the first time it is asked for and
    keeps it, so a second access doesn't go back to the server.  refresh()
    forces a new pull.
    """
    kind: str|None = field(default=None)
    id: str|None = field(default=None)
    tableReference: dict|None = field(default=None)
    friendlyName: str|None = field(default=None)
    type: str|None = field(default=None)
    full: dict|None = field(default=None, init=False, repr=False, compare=False)

    required = ("tableReference",)

    def __post_init__(self) -> None:
        self.fixup()

    def __bool__(self) -> bool:
        return bool(self.table_id)

    def __str__(self) -> str:
        if self:
            return f"{self.project_id}:{self.dataset_id}.{self.table_id}"
        return "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def fixup(self) -> None:
        if self.tableReference is not None:
            if not isinstance(self.tableReference, dict) or not self.tableReference.get('tableId'):
                raise InvalidResponseError(f"Invalid tableReference: {self.tableReference!r}")

    def _ref(self, key: str) -> str|None:
        return self.tableReference.get(key, None) if self.tableReference else None

    @property
    def project_id(self) -> str|None:
        return self._ref('projectId')

    @property
    def dataset_id(self) -> str|None:
        return self._ref('datasetId')

    @property
    def table_id(self) -> str|None:
        return self._ref('tableId')

    def refresh(self) -> None:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/tables/get
        Pull the full table resource.
        """
        if not self:
            raise ValueError("Table::refresh must have a valid tableReference")
        response = _get_service().tables().get(projectId=self.project_id,
                                               datasetId=self.dataset_id,
                                               tableId=self.table_id).execute()
        if not isinstance(response, dict):
            raise InvalidResponseError(f"Table::refresh got {response!r}")
        self.full = response
        self.update_fields(**{k: response.get(k, None) for k in ['kind', 'id', 'friendlyName', 'type']})

    def _full(self, key: str) -> Any:
        if self.full is None:
            self.refresh()
        return self.full.get(key, None)

    @property
    def description(self) -> str|None:
        return self._full('description')

    @property
    def etag(self) -> str|None:
        return self._full('etag')

    @property
    def api_url(self) -> str|None:
        return self._full('selfLink')

    @property
    def location(self) -> str|None:
        return self._full('location')

    @property
    def bytes_count(self) -> int|None:
        return _int(self._full('numBytes'))

    @property
    def rows_count(self) -> int|None:
        return _int(self._full('numRows'))

    @property
    def created_at(self) -> datetime.datetime|None:
        return _millis(self._full('creationTime'))

    @property
    def modified_at(self) -> datetime.datetime|None:
        return _millis(self._full('lastModifiedTime'))

    @property
    def expires_at(self) -> datetime.datetime|None:
        return _millis(self._full('expirationTime'))

    @property
    def schema(self) -> tuple[SchemaField, ...]:
        s = self._full('schema') or {}
        return tuple(SchemaField.from_api(f) for f in s.get('fields', []))

    @property
    def headers(self) -> list[str]:
        """Top level column names, in schema order."""
        return [f.name for f in self.schema]

@dataclass
class Dataset(CloudResourceBase):
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/datasets/list#response-body
    The summary form returned by datasets.list.
    """
    kind: str|None = field(default=None)
    id: str|None = field(default=None)
    datasetReference: dict|None = field(default=None)
    friendlyName: str|None = field(default=None)
    location: str|None = field(default=None)
    labels: dict|None = field(default=None)

    required = ("datasetReference",)

    def __bool__(self) -> bool:
        return bool(self.dataset_id)

    def __str__(self) -> str:
        return f"{self.project_id}:{self.dataset_id}" if self else "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    @property
    def project_id(self) -> str|None:
        return self.datasetReference.get('projectId', None) if self.datasetReference else None

    @property
    def dataset_id(self) -> str|None:
        return self.datasetReference.get('datasetId', None) if self.datasetReference else None

    def tables(self, max: int|None = None) -> Page[Table]:
        """First page of this dataset's tables, see list_tables()."""
        return list_tables(self.dataset_id, project=self.project_id, max=max)

def list_datasets(project: str|None = None, all: bool = False,
                  max: int|None = None) -> Page[Dataset]:
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/datasets/list
    all includes hidden datasets.
    """
    fetcher = ListMethodFetcher(_get_service().datasets().list, "datasets",
                                projectId=_project(project), all=all or None)
    return Page.first(fetcher, Dataset.from_api, max)

def list_tables(dataset: str|Dataset, project: str|None = None,
                max: int|None = None) -> Page[Table]:
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/tables/list
    The tables come back as summaries, see Table.
    """
    if isinstance(dataset, Dataset):
        project = project or dataset.project_id
        dataset = dataset.dataset_id
    if not dataset:
        raise ValueError("list_tables requires a dataset")
    fetcher = ListMethodFetcher(_get_service().tables().list, "tables",
                                projectId=_project(project), datasetId=str(dataset))
    return Page.first(fetcher, Table.from_api, max)
