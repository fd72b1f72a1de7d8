import pytest

from conftest import StubClient
from flinkops.core.models import (
    CancelRequest,
    DeployRequest,
    FlinkInstall,
    ShutDownRequest,
    SubmitRequest,
    validate_job_id,
)
from flinkops.core.responses import (
    cancel_response,
    deploy_response,
    normalize_address,
    submit_response,
)

FLINK = FlinkInstall(home="/opt/flink")


def test_validate_job_id_normalizes_hex():
    assert validate_job_id(" ABC123 ") == "abc123"


@pytest.mark.parametrize("value", ["", "  ", "not-a-job", "12g4"])
def test_validate_job_id_rejects_invalid_input(value):
    with pytest.raises(ValueError):
        validate_job_id(value)


def test_cancel_request_normalizes_job_id():
    req = CancelRequest(flink=FLINK, cluster_id="application_1", job_id="ABCDEF")

    assert req.job_id == "abcdef"
    assert req.with_savepoint is False


@pytest.mark.parametrize("cluster_id", ["", "   "])
def test_requests_reject_blank_cluster_id(cluster_id):
    with pytest.raises(ValueError, match="cluster_id"):
        ShutDownRequest(flink=FLINK, cluster_id=cluster_id)


def test_submit_request_rejects_bad_parallelism():
    with pytest.raises(ValueError, match="parallelism"):
        SubmitRequest(flink=FLINK, cluster_id="application_1", jar_path="a.jar", parallelism=0)


def test_flink_install_and_deploy_request_validation():
    with pytest.raises(ValueError):
        FlinkInstall(home="")
    with pytest.raises(ValueError, match="dist_jar"):
        DeployRequest(flink=FLINK, dist_jar=" ")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("http://host:8081/", "http://host:8081"),
        (" http://host:8081 ", "http://host:8081"),
        ("", None),
        (None, None),
    ],
)
def test_normalize_address(raw, expected):
    assert normalize_address(raw) == expected


def test_deploy_response_requires_endpoint():
    assert deploy_response(StubClient("application_1", url=None)) is None
    resp = deploy_response(StubClient("application_1", url="http://host:8081"))
    assert resp.cluster_id == "application_1"


def test_submit_response_snapshots_config():
    config = {"a": "1"}
    resp = submit_response("application_1", config, "f" * 32, "http://host:8081/")

    config["a"] = "2"

    assert resp.config == {"a": "1"}
    assert resp.web_url == "http://host:8081"


def test_cancel_response_empty_location_is_none():
    assert cancel_response("").savepoint_dir is None
