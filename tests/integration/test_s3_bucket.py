"""Provisions the S3 bucket module with real terraform and tears it down again.

Creates cloud resources: run with ``pytest --run-integration`` from the
harness directory, or point ``TFHARNESS_CONFIG_ROOT`` at the module.
"""

from __future__ import annotations

import shutil

import pytest
import structlog

from tfharness.config import TerraformSettings
from tfharness.domain.models.lifecycle import CleanupStatus
from tfharness.domain.services.lifecycle_service import LifecycleDriver
from tfharness.infrastructure.process.runner import AsyncProcessRunner
from tfharness.infrastructure.terraform.executor import TerraformCli


pytestmark = pytest.mark.integration

logger = structlog.get_logger(__name__)


@pytest.fixture
def live_settings() -> TerraformSettings:
    settings = TerraformSettings()
    if shutil.which(settings.binary) is None:
        pytest.skip(f"{settings.binary} not found on PATH")
    return settings


@pytest.mark.asyncio
async def test_terraform_s3_bucket(live_settings: TerraformSettings) -> None:
    terraform = TerraformCli(
        runner=AsyncProcessRunner(),
        config_root=live_settings.resolved_config_root,
        var_file=live_settings.var_file,
        binary=live_settings.binary,
    )
    driver = LifecycleDriver(
        terraform,
        output_names=live_settings.output_names,
        deadline_seconds=live_settings.deadline_seconds,
    )

    # Fatal step failures raise with the command, stdout and stderr attached.
    run = await driver.run()

    assert run.passed
    if run.cleanup == CleanupStatus.FAILED:
        logger.warning("manual_cleanup_required", details=run.cleanup_error)
