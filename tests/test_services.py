import datetime
import logging
from unittest import mock

import pytest

from gcpager import bigquery, cloudlogging, storage
from gcpager.access import gcp
from gcpager.errors import InvalidResponseError

@pytest.fixture
def service(monkeypatch):
    s = mock.MagicMock()
    for module in [storage, cloudlogging, bigquery]:
        monkeypatch.setattr(module, "_get_service", lambda: s)
    yield s
    gcp.reset()

def responses(method, *pages):
    method.return_value.execute.side_effect = list(pages)
    return method

def test_list_files_all_pages(service):
    method = responses(service.objects.return_value.list,
        {"items": [{"name": "CloudLogo1", "bucket": "b", "size": "128",
                    "timeCreated": "2016-05-01T10:00:00.000Z"},
                   {"name": "CloudLogo2", "bucket": "b", "size": "128"}],
         "nextPageToken": "T1"},
        {"items": [{"name": "CloudLogo3", "bucket": "b", "size": "64"}]})
    files = storage.list_files("b", max=2)
    assert(files.has_next())
    assert(all(isinstance(f, storage.File) for f in files))
    assert(files[0].size == 128)
    assert(files[0].timeCreated.year == 2016)
    names = [f.name for f in files.all()]
    assert(names == ["CloudLogo1", "CloudLogo2", "CloudLogo3"])
    assert(method.call_args_list == [mock.call(bucket="b", maxResults=2),
                                     mock.call(bucket="b", pageToken="T1", maxResults=2)])

def test_list_files_request_limit(service):
    method = responses(service.objects.return_value.list,
        {"items": [{"name": "a"}], "nextPageToken": "T1"},
        {"items": [{"name": "b"}], "nextPageToken": "T2"},
        {"items": [{"name": "c"}]})
    seen = []
    storage.Bucket(name="b").files(prefix="x/").each(seen.append, request_limit=1)
    assert([f.name for f in seen] == ["a", "b"])
    assert(method.call_count == 2)
    assert(method.call_args_list[0] == mock.call(bucket="b", prefix="x/"))

def test_file_without_name_is_invalid(service):
    responses(service.objects.return_value.list, {"items": [{"bucket": "b"}]})
    with pytest.raises(InvalidResponseError):
        storage.list_files("b")

def test_list_buckets_needs_project(service):
    with pytest.raises(ValueError):
        storage.list_buckets()
    gcp.project = "my-project"
    method = responses(service.buckets.return_value.list, {"items": [{"name": "b1", "location": "US"}]})
    buckets = storage.list_buckets()
    assert(str(buckets[0]) == "gs://b1")
    method.assert_called_once_with(project="my-project")

def test_list_metrics(service):
    method = responses(service.projects.return_value.metrics.return_value.list,
        {"metrics": [{"name": "errors", "filter": "severity>=ERROR", "version": "V2"}],
         "nextPageToken": "T1"},
        {"metrics": [{"name": "warnings", "filter": "severity=WARNING"}], "nextPageToken": ""})
    metrics = cloudlogging.list_metrics("test", max=1)
    assert(str(metrics[0]) == "errors:severity>=ERROR")
    following = metrics.next()
    assert(following[0].name == "warnings")
    assert(not following.has_next())
    assert(following.next() is None)
    assert(method.call_args_list == [mock.call(parent="projects/test", pageSize=1),
                                     mock.call(parent="projects/test", pageToken="T1", pageSize=1)])

def test_list_sinks(service):
    method = responses(service.projects.return_value.sinks.return_value.list,
        {"sinks": [{"name": "s", "destination": "storage.googleapis.com/b"}]})
    sinks = cloudlogging.list_sinks("projects/test")
    assert(sinks[0].destination == "storage.googleapis.com/b")
    method.assert_called_once_with(parent="projects/test")

def table_summary(table_id: str) -> dict:
    return {"kind": "bigquery#table", "id": f"test-project:my_dataset.{table_id}",
            "tableReference": {"projectId": "test-project", "datasetId": "my_dataset",
                               "tableId": table_id},
            "type": "TABLE"}

def table_full(table_id: str) -> dict:
    t = table_summary(table_id)
    t.update({"description": "This is my table", "etag": "etag123456789",
              "selfLink": "http://googleapi/bigquery/v2/projects/test-project/datasets/my_dataset/tables/my_table",
              "numBytes": "1000", "numRows": "100", "location": "US",
              "creationTime": "1462096800000", "lastModifiedTime": "1462100400000",
              "schema": {"fields": [{"name": "name", "type": "STRING", "mode": "REQUIRED"},
                                    {"name": "age", "type": "INTEGER"},
                                    {"name": "score", "type": "FLOAT"},
                                    {"name": "active", "type": "BOOLEAN"}]}})
    return t

def test_list_tables(service):
    method = responses(service.tables.return_value.list,
        {"tables": [table_summary("t1"), table_summary("t2")], "nextPageToken": "T1", "totalItems": 3},
        {"tables": [table_summary("t3")]})
    tables = bigquery.list_tables("my_dataset", project="test-project")
    assert([t.table_id for t in tables.all()] == ["t1", "t2", "t3"])
    assert(str(tables[0]) == "test-project:my_dataset.t1")
    assert(method.call_args_list[1] == mock.call(projectId="test-project", datasetId="my_dataset", pageToken="T1"))

def test_list_datasets_then_tables(service):
    responses(service.datasets.return_value.list,
        {"datasets": [{"id": "test-project:my_dataset",
                       "datasetReference": {"projectId": "test-project", "datasetId": "my_dataset"}}]})
    method = responses(service.tables.return_value.list, {"tables": [table_summary("t1")]})
    datasets = bigquery.list_datasets("test-project")
    tables = datasets[0].tables()
    assert(tables[0].table_id == "t1")
    method.assert_called_once_with(projectId="test-project", datasetId="my_dataset")

@pytest.mark.parametrize("attr,val", [
    ("description", "This is my table"),
    ("etag", "etag123456789"),
    ("api_url", "http://googleapi/bigquery/v2/projects/test-project/datasets/my_dataset/tables/my_table"),
    ("bytes_count", 1000),
    ("rows_count", 100),
    ("location", "US"),
    ("expires_at", None),
    ("headers", ["name", "age", "score", "active"]),
])
def test_table_full_attributes_load_once(service, attr, val):
    get = service.tables.return_value.get
    get.return_value.execute.return_value = table_full("my_table")
    table = bigquery.Table.from_api(table_summary("my_table"))
    assert(getattr(table, attr) == val)
    # A second access does not make a second API call
    getattr(table, attr)
    get.assert_called_once_with(projectId="test-project", datasetId="my_dataset", tableId="my_table")

def test_table_timestamps_and_schema(service):
    service.tables.return_value.get.return_value.execute.return_value = table_full("my_table")
    table = bigquery.Table.from_api(table_summary("my_table"))
    assert(table.created_at == datetime.datetime(2016, 5, 1, 10, 0, tzinfo=datetime.timezone.utc))
    assert(table.modified_at == datetime.datetime(2016, 5, 1, 11, 0, tzinfo=datetime.timezone.utc))
    assert(table.schema[0] == bigquery.SchemaField("name", "STRING", "REQUIRED"))
    assert(table.schema[1].mode == "NULLABLE")
    assert(service.tables.return_value.get.call_count == 1)
    table.refresh()
    assert(service.tables.return_value.get.call_count == 2)

def test_table_bad_reference():
    with pytest.raises(InvalidResponseError):
        bigquery.Table.from_api({"tableReference": {"projectId": "p"}})
    with pytest.raises(InvalidResponseError):
        bigquery.Table.from_api({"id": "p:d.t"})

def test_bucket_get(service):
    get = service.buckets.return_value.get
    get.return_value.execute.return_value = {"name": "b1", "location": "US", "kind": "storage#bucket"}
    bucket = storage.Bucket.get("b1")
    assert(isinstance(bucket, storage.Bucket))
    assert(bucket.location == "US")
    get.assert_called_once_with(bucket="b1")

@pytest.fixture
def web_app_log(service):
    handler = cloudlogging.CloudLoggingHandler(
        "web_app_log",
        resource={"type": "gce_instance", "labels": {"zone": "global", "instance_id": "abc123"}},
        labels={"env": "production"}, project="test", level=logging.WARNING)
    logger = logging.getLogger("web_app")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(handler)
    yield logger
    logger.removeHandler(handler)

@pytest.mark.parametrize("level,severity", [
    (logging.DEBUG, None),
    (logging.INFO, None),
    (logging.WARNING, "WARNING"),
    (logging.ERROR, "ERROR"),
    (logging.CRITICAL, "CRITICAL"),
    (60, "DEFAULT"),
])
def test_handler_writes_entries_at_level(service, web_app_log, level, severity):
    write = service.entries.return_value.write
    web_app_log.log(level, "Danger Will Robinson!")
    if severity is None:
        write.assert_not_called()
    else:
        write.assert_called_once_with(body={
            "logName": "projects/test/logs/web_app_log",
            "resource": {"type": "gce_instance", "labels": {"zone": "global", "instance_id": "abc123"}},
            "labels": {"env": "production"},
            "entries": [{"textPayload": "Danger Will Robinson!", "severity": severity}]})
        write.return_value.execute.assert_called_once_with()

def test_handler_defaults_and_client_loggers(service):
    gcp.project = "adc-project"
    handler = cloudlogging.CloudLoggingHandler("app/requests")
    record = logging.LogRecord("web_app", logging.INFO, __file__, 1, "hello %s", ("there",), None)
    body = handler.write_request(record)
    assert(body["logName"] == "projects/adc-project/logs/app%2Frequests")
    assert(body["resource"] == {"type": "global"})
    assert("labels" not in body)
    assert(body["entries"][0]["textPayload"] == "hello there")
    # the API client's own chatter never turns into entries
    handler.handle(logging.LogRecord("googleapiclient.discovery", logging.WARNING, __file__, 1, "x", None, None))
    service.entries.return_value.write.assert_not_called()
    with pytest.raises(ValueError):
        cloudlogging.CloudLoggingHandler("")
