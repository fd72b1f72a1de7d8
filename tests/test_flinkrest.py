import pytest
import requests

from conftest import FakeResponse, FakeSession
from flinkops.core.adapters.flinkrest import FlinkRestClusterClient
from flinkops.core.controlplane import ClusterRetrieveError, SavepointError
from flinkops.core.packaging import JobGraph

JOB = "a" * 32


def _client(routes, address="http://host:8081/", **kwargs):
    session = FakeSession(routes)
    client = FlinkRestClusterClient(
        "application_1", address, session=session, poll_interval=0, **kwargs
    )
    return client, session


def test_submit_job_uploads_runs_and_deletes_jar(tmp_path):
    jar = tmp_path / "job.jar"
    jar.write_bytes(b"PK")
    client, session = _client(
        {
            ("POST", "/jars/upload"): [
                FakeResponse(200, {"filename": "/tmp/flink-web/upload/1234_job.jar"})
            ],
            ("POST", "/jars/1234_job.jar/run"): [FakeResponse(200, {"jobid": JOB})],
            ("DELETE", "/jars/1234_job.jar"): [FakeResponse(200, {})],
        }
    )

    job_id = client.submit_job(
        JobGraph(jar_path=str(jar), entry_class="org.example.Main", parallelism=2)
    )

    assert job_id == JOB
    methods = [(m, url) for m, url, _ in session.requests]
    assert methods == [
        ("POST", "http://host:8081/jars/upload"),
        ("POST", "http://host:8081/jars/1234_job.jar/run"),
        ("DELETE", "http://host:8081/jars/1234_job.jar"),
    ]
    run_body = session.requests[1][2]["json"]
    assert run_body == {
        "entryClass": "org.example.Main",
        "parallelism": 2,
        "allowNonRestoredState": False,
    }


def test_submit_job_deletes_jar_even_if_run_fails(tmp_path):
    jar = tmp_path / "job.jar"
    jar.write_bytes(b"PK")
    client, session = _client(
        {
            ("POST", "/jars/upload"): [FakeResponse(200, {"filename": "/x/9_job.jar"})],
            ("POST", "/jars/9_job.jar/run"): [FakeResponse(500, {"errors": ["boom"]})],
            ("DELETE", "/jars/9_job.jar"): [FakeResponse(200, {})],
        }
    )

    with pytest.raises(requests.HTTPError):
        client.submit_job(JobGraph(jar_path=str(jar)))

    assert session.requests[-1][0] == "DELETE"


def test_cancel_patches_job():
    client, session = _client({("PATCH", f"/jobs/{JOB}"): [FakeResponse(202)]})

    client.cancel(JOB)

    method, url, kwargs = session.requests[0]
    assert method == "PATCH"
    assert kwargs["params"] == {"mode": "cancel"}


def test_trigger_savepoint_polls_until_completed():
    client, session = _client(
        {
            ("POST", f"/jobs/{JOB}/savepoints"): [
                FakeResponse(202, {"request-id": "trig-1"})
            ],
            ("GET", f"/jobs/{JOB}/savepoints/trig-1"): [
                FakeResponse(200, {"status": {"id": "IN_PROGRESS"}}),
                FakeResponse(
                    200,
                    {
                        "status": {"id": "COMPLETED"},
                        "operation": {"location": "hdfs:///sp/savepoint-1"},
                    },
                ),
            ],
        }
    )

    location = client.trigger_savepoint(JOB, "hdfs:///sp")

    assert location == "hdfs:///sp/savepoint-1"
    assert session.requests[0][2]["json"] == {
        "target-directory": "hdfs:///sp",
        "cancel-job": False,
    }
    assert len(session.requests) == 3


def test_savepoint_failure_cause_raises():
    client, _ = _client(
        {
            ("POST", f"/jobs/{JOB}/stop"): [FakeResponse(202, {"request-id": "t"})],
            ("GET", f"/jobs/{JOB}/savepoints/t"): [
                FakeResponse(
                    200,
                    {
                        "status": {"id": "COMPLETED"},
                        "operation": {"failure-cause": {"class": "CheckpointException"}},
                    },
                )
            ],
        }
    )

    with pytest.raises(SavepointError, match="CheckpointException"):
        client.stop_with_savepoint(JOB, None, drain=True)


def test_savepoint_timeout_raises():
    client, _ = _client(
        {
            ("POST", f"/jobs/{JOB}/savepoints"): [FakeResponse(202, {"request-id": "t"})],
            ("GET", f"/jobs/{JOB}/savepoints/t"): [
                FakeResponse(200, {"status": {"id": "IN_PROGRESS"}})
            ],
        },
        savepoint_timeout=0,
    )

    with pytest.raises(SavepointError, match="did not complete"):
        client.cancel_with_savepoint(JOB, None)


def test_shutdown_and_close():
    client, session = _client({("DELETE", "/cluster"): [FakeResponse(202)]})

    client.shutdown_cluster()
    client.close()

    assert session.requests[0][:2] == ("DELETE", "http://host:8081/cluster")
    assert session.closed is True


def test_client_without_endpoint_cannot_act():
    client, session = _client({}, address=None)

    assert client.web_interface_url() is None
    with pytest.raises(ClusterRetrieveError):
        client.cancel(JOB)
    assert session.requests == []
