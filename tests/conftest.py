"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from tfharness.config import TerraformSettings
from tfharness.domain.models.invocation import Deadline
from tfharness.domain.services.lifecycle_service import LifecycleDriver
from tfharness.infrastructure.terraform.executor import TerraformCli
from tfharness.testing.runner import ScriptedProcessRunner


VAR_FILE = "terratests/test.tfvars"

BUCKET_OUTPUTS = {
    "s3_bucket_id": '"harness-test-bucket"\n',
    "s3_bucket_arn": '"arn:aws:s3:::harness-test-bucket"\n',
    "s3_bucket_region": '"eu-west-1"\n',
}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests that drive the real terraform binary and create cloud resources",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-integration"):
        return
    skip_integration = pytest.mark.skip(reason="needs --run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def deadline() -> Deadline:
    return Deadline.after(60)


@pytest.fixture
def config_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def scripted_runner() -> ScriptedProcessRunner:
    """Runner where every terraform command succeeds with valid bucket outputs."""
    runner = ScriptedProcessRunner()
    for name, stdout in BUCKET_OUTPUTS.items():
        runner.script("output", "-json", name, stdout=stdout)
    return runner


@pytest.fixture
def terraform(scripted_runner: ScriptedProcessRunner, config_root: Path) -> TerraformCli:
    return TerraformCli(
        runner=scripted_runner,
        config_root=config_root,
        var_file=VAR_FILE,
    )


@pytest.fixture
def driver(terraform: TerraformCli) -> LifecycleDriver:
    return LifecycleDriver(terraform, deadline_seconds=1800)


@pytest.fixture
def terraform_settings(config_root: Path) -> TerraformSettings:
    return TerraformSettings(
        config_root=config_root,
        var_file=VAR_FILE,
        deadline_seconds=1800,
    )
