import pytest

from flinkops.core.config import EffectiveConfiguration
from flinkops.core.models import FlinkInstall, SubmitRequest
from flinkops.core.packaging import package_program

FLINK = FlinkInstall(home="/opt/flink")


def _request(jar_path: str, **kwargs) -> SubmitRequest:
    return SubmitRequest(flink=FLINK, cluster_id="application_1", jar_path=jar_path, **kwargs)


def test_package_program_describes_jar(tmp_path):
    jar = tmp_path / "job.jar"
    jar.write_bytes(b"PK")
    config = EffectiveConfiguration({"parallelism.default": "3"})

    with package_program(
        _request(str(jar), program_args=("--x", "1"), savepoint_path="hdfs:///sp"),
        config,
    ) as graph:
        assert graph.jar_path == str(jar.resolve())
        assert graph.program_args == ("--x", "1")
        assert graph.parallelism == 3
        assert graph.savepoint_path == "hdfs:///sp"


def test_explicit_parallelism_wins(tmp_path):
    jar = tmp_path / "job.jar"
    jar.write_bytes(b"PK")
    config = EffectiveConfiguration({"parallelism.default": "3"})

    with package_program(_request(str(jar), parallelism=5), config) as graph:
        assert graph.parallelism == 5


def test_package_program_rejects_non_jar(tmp_path):
    path = tmp_path / "job.zip"
    path.write_bytes(b"PK")

    with pytest.raises(ValueError, match="Not a jar"):
        with package_program(_request(str(path)), EffectiveConfiguration()):
            pass


def test_package_program_rejects_missing_jar(tmp_path):
    with pytest.raises(ValueError, match="does not exist"):
        with package_program(
            _request(str(tmp_path / "missing.jar")), EffectiveConfiguration()
        ):
            pass
