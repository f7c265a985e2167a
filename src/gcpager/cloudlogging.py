"""
Cloud Logging v2: metric and sink listings, plus a logging.Handler that
writes records as log entries.  Named so it doesn't get confused with the
stdlib logging module.
"""
from dataclasses import dataclass, field
from functools import partial
import logging
from urllib.parse import quote

from .access import gcp, require_service
from .fetchers import ListMethodFetcher
from .page import Page
from .resources import CloudResourceBase

_get_service = partial(require_service, "logging", "v2")

def _parent(project: str|None) -> str:
    p = project or gcp.project
    if not p:
        raise ValueError("Cloud Logging listing requires a project")
    p = str(p)
    return p if p.startswith("projects/") else f"projects/{p}"

@dataclass
class Metric(CloudResourceBase):
    """
    https://cloud.google.com/logging/docs/reference/v2/rest/v2/projects.metrics#LogMetric
    A logs-based metric, the count of entries matching filter.
    """
    name: str|None = field(default=None)
    description: str|None = field(default=None)
    filter: str|None = field(default=None)
    disabled: bool|None = field(default=None)
    createTime: str|None = field(default=None)
    updateTime: str|None = field(default=None)

    required = ("name",)

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        return f"{self.name}:{self.filter}" if self else "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

@dataclass
class Sink(CloudResourceBase):
    """
    https://cloud.google.com/logging/docs/reference/v2/rest/v2/projects.sinks#LogSink
    """
    name: str|None = field(default=None)
    destination: str|None = field(default=None)
    filter: str|None = field(default=None)
    writerIdentity: str|None = field(default=None)
    includeChildren: bool|None = field(default=None)
    disabled: bool|None = field(default=None)

    required = ("name",)

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        return f"{self.name}->{self.destination}" if self else "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

def list_metrics(project: str|None = None, max: int|None = None) -> Page[Metric]:
    """
    https://cloud.google.com/logging/docs/reference/v2/rest/v2/projects.metrics/list
    """
    fetcher = ListMethodFetcher(_get_service().projects().metrics().list, "metrics",
                                page_size_param="pageSize", parent=_parent(project))
    return Page.first(fetcher, Metric.from_api, max)

def list_sinks(project: str|None = None, max: int|None = None) -> Page[Sink]:
    """
    https://cloud.google.com/logging/docs/reference/v2/rest/v2/projects.sinks/list
    """
    fetcher = ListMethodFetcher(_get_service().projects().sinks().list, "sinks",
                                page_size_param="pageSize", parent=_parent(project))
    return Page.first(fetcher, Sink.from_api, max)

# https://cloud.google.com/logging/docs/reference/v2/rest/v2/LogEntry#logseverity
SEVERITIES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARNING",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

# writing an entry goes through these, logging them would loop forever
EXCLUDED_LOGGERS = ("gcpager", "googleapiclient", "google.auth", "google_auth_httplib2", "httplib2", "urllib3")

class CloudLoggingHandler(logging.Handler):
    """
    https://cloud.google.com/logging/docs/reference/v2/rest/v2/entries/write
    Sends each record as one entry to the log log_name, tagged with the
    monitored resource and labels given here.  Levels are filtered the usual
    way, set one on the handler or the logger.  Anything that isn't one of the
    standard levels goes out with DEFAULT severity.
    """
    def __init__(self, log_name: str, resource: dict|None = None,
                 labels: dict|None = None, project: str|None = None,
                 level: int = logging.NOTSET) -> None:
        super().__init__(level)
        if not log_name:
            raise ValueError("CloudLoggingHandler requires a log name")
        self.log_name = str(log_name)
        self.resource = dict(resource) if resource else {"type": "global"}
        self.labels = dict(labels) if labels else {}
        self.project = project

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{self.log_name}:{logging.getLevelName(self.level)}"

    @staticmethod
    def severity(levelno: int) -> str:
        return SEVERITIES.get(levelno, "DEFAULT")

    def write_request(self, record: logging.LogRecord) -> dict:
        """The entries.write body for a single record."""
        body = {
            "logName": f"{_parent(self.project)}/logs/{quote(self.log_name, safe='')}",
            "resource": self.resource,
            "entries": [{"textPayload": self.format(record),
                         "severity": self.severity(record.levelno)}]
        }
        if self.labels:
            body["labels"] = self.labels
        return body

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(EXCLUDED_LOGGERS):
            return
        try:
            body = self.write_request(record)
            _get_service().entries().write(body=body).execute()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)
