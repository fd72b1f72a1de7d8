import pytest
import requests

from conftest import StubDescriptor, make_report
from flinkops.core.discovery import classify, discover, find_report
from flinkops.core.models import ApplicationStatus


@pytest.mark.parametrize(
    ("final", "expected"),
    [
        ("UNDEFINED", ApplicationStatus.RUNNING),
        ("SUCCEEDED", ApplicationStatus.TERMINATED),
        ("FAILED", ApplicationStatus.TERMINATED),
        ("KILLED", ApplicationStatus.TERMINATED),
    ],
)
def test_classify_final_status(final, expected):
    assert classify(make_report("application_1", final=final)) is expected


def test_classify_missing_report():
    assert classify(None) is ApplicationStatus.NOT_FOUND


def test_discover_not_found_is_not_an_error():
    descriptor = StubDescriptor()

    assert discover(descriptor, "application_1") is ApplicationStatus.NOT_FOUND
    assert find_report(descriptor, "application_1") is None


def test_discover_propagates_transport_errors():
    descriptor = StubDescriptor(
        reports={"application_1": requests.ConnectionError("rm down")}
    )

    with pytest.raises(requests.ConnectionError):
        discover(descriptor, "application_1")
