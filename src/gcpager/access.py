from collections.abc import Iterable
import logging

import google.auth
import google.auth.exceptions
from google.auth.credentials import Credentials
from googleapiclient.discovery import build, Resource
import googleapiclient.discovery_cache as gcp_discovery_cache

from .errors import PreconditionError

log = logging.getLogger(__name__)

class __GCPAccess():
    """
    Class holding what is needed to get at Cloud API services: credentials,
    scopes, and the built discovery services themselves.
    Getting credentials is not our business.  Either assign some to
    creds or leave it alone and google.auth.default() will find whatever the
    environment provides (GOOGLE_APPLICATION_CREDENTIALS, gcloud ADC, metadata server).

    It makes no sense to have multiple sets of credentials per application so do this
    as a module singleton and the per service modules just ask it for their service.
    """

    __SCOPES = {
        "cloud-platform": "https://www.googleapis.com/auth/cloud-platform",
        "cloud-platform-ro": "https://www.googleapis.com/auth/cloud-platform.read-only",
        "storage": "https://www.googleapis.com/auth/devstorage.read_write",
        "storage-ro": "https://www.googleapis.com/auth/devstorage.read_only",
        "storage-full": "https://www.googleapis.com/auth/devstorage.full_control",
        "logging": "https://www.googleapis.com/auth/logging.admin",
        "logging-ro": "https://www.googleapis.com/auth/logging.read",
        "bigquery": "https://www.googleapis.com/auth/bigquery",
        "bigquery-ro": "https://www.googleapis.com/auth/bigquery.readonly",
    }
    __SCOPE_URL_PREFIX = "https://www.googleapis.com/"
    __DEFAULT_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

    def __init__(self) -> None:
        self.reset()

    def __bool__(self) -> bool:
        """True if we have credentials"""
        return self.connected

    def __str__(self) -> str:
        if self.connected:
            return f"Connected:{self.project}:{str(self.__scopes)}"
        return f"Disconnected:{str(self.__scopes)}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    @classmethod
    def get_scope(cls, scope: str) -> str:
        """
        Get a scope based on simplified label.
        A raw URL will also be expected.
        """
        s = str(scope)
        sc = cls.__SCOPES.get(s, "")
        if not sc and s.startswith(cls.__SCOPE_URL_PREFIX):
            sc = s
        return sc

    @property
    def connected(self) -> bool:
        """
        Do we have credentials to hand to the services?
        Default credentials typically aren't 'valid' until the first request
        refreshes them so having them at all is what counts.
        """
        return self.__creds is not None

    @property
    def creds(self) -> Credentials|None:
        """
        Current credentials or None
        """
        return self.__creds

    @creds.setter
    def creds(self, value: Credentials|None) -> None:
        """
        Use these credentials instead of looking up the defaults.
        Services built with the old ones are dropped.
        """
        if value is not self.__creds:
            self.__creds = value
            self.__services = {}

    @property
    def project(self) -> str|None:
        """
        Project the listings default to.  Picked up from the default
        credentials if not set explicitly.
        """
        return self.__project

    @project.setter
    def project(self, value: str|None) -> None:
        self.__project = value if value is None else str(value)

    @property
    def scopes(self) -> list[str]:
        """
        The scopes requested when looking up default credentials.
        """
        return self.__scopes

    @scopes.setter
    def scopes(self, value: None|list[str]|str) -> None:
        """
        Override the list of scopes.  Unknown labels are dropped.
        New scopes means new credentials so everything is cleared.
        """
        slist = []
        if value is not None:
            if isinstance(value,str) or not isinstance(value,Iterable):
                value = [value]
            for v in value:
                s = self.get_scope(str(v))
                if s and s not in slist:
                    slist.append(s)
        if slist != self.__scopes:
            self.__scopes = slist
            self.clear()

    def append_scopes(self, *args) -> None:
        """
        Adding to the current scope list.
        """
        slist = list(self.__scopes)
        for a in args:
            b = [a] if isinstance(a,str) or not isinstance(a, Iterable) else a
            for i in b:
                s = self.get_scope(str(i))
                if s and s not in slist:
                    slist.append(s)
        self.scopes = slist

    @property
    def services(self) -> dict[str,Resource]:
        """
        Current built services.  Can be empty.
        """
        return self.__services

    @property
    def developer_key(self) -> str|None:
        return self.__developer_key

    @developer_key.setter
    def developer_key(self, value: str|None) -> None:
        v = value if value is None else str(value)
        if v != self.__developer_key:
            self.__services = {}
            self.__developer_key = v

    @property
    def config(self) -> dict:
        """
        Get all configuration state as a dict.
        Convenience for getting it all at once for pushing into a json, toml, ini, etc, file.
        """
        config = {
            'project': self.__project,
            'scopes': self.__scopes,
            'developer_key': self.__developer_key,
            'cache_discovery': self.cache_discovery
        }
        return config

    @config.setter
    def config(self, config: dict) -> None:
        """
        Set configuration state from a dict.
        Convenience method for inserting state pulled from a config file or equivalent.
        """
        v = config.get('project', None)
        if v is not None:
            self.project = v
        v = config.get('scopes', [])
        if v:
            self.scopes = v
        v = config.get('developer_key', None)
        if v is not None:
            self.developer_key = v
        v = config.get('cache_discovery', None)
        if v is not None:
            if bool(v) != self.cache_discovery:
                self.__services = {}
            self.cache_discovery = bool(v)

    def clear(self) -> None:
        """Forget credentials and built services, keep the configuration."""
        self.__creds = None
        self.__services = {}

    def reset(self) -> None:
        """
        Reset all state to defaults.
        """
        self.__creds = None
        self.__project = None
        self.__scopes = list(self.__DEFAULT_SCOPES)
        self.__services = {}
        self.__developer_key = None
        self.cache_discovery = True

    def connect(self) -> bool:
        """
        Look up default credentials if none were assigned.
        Not finding any is not an error here, get_service just has nothing to give.
        """
        if self.__creds is None:
            try:
                creds, project = google.auth.default(scopes=self.__scopes)
            except google.auth.exceptions.DefaultCredentialsError as e:
                log.warning("no default credentials available: %s", e)
            else:
                self.__creds = creds
                if self.__project is None:
                    self.__project = project
        return self.connected

    def get_service(self, name: str, version: str) -> Resource|None:
        """
        Build the requested service if not already available, connecting if required.
        Can return None if no credentials are available.
        """
        if not self.connected and not self.connect():
            return None
        id = f'{name}:{version}'
        s = self.__services.get(id, None)
        if s is None:
            log.debug("building service %s", id)
            if self.cache_discovery:
                s = build(name, version, credentials=self.__creds,
                          developerKey=self.__developer_key,
                          cache=gcp_discovery_cache.autodetect())
            else:
                s = build(name, version, credentials=self.__creds,
                          developerKey=self.__developer_key, cache_discovery=False)
            if s:
                self.__services[id] = s
        return s

gcp = __GCPAccess()

def require_service(name: str, version: str) -> Resource:
    """
    get_service() for callers that can't do anything without one.
    The per service modules partial() this with their name and version.
    """
    s = gcp.get_service(name, version)
    if s is None:
        raise PreconditionError(f"Must have active connection to service {name}:{version}")
    return s
