"""Unit tests for the Terraform CLI executor."""

from __future__ import annotations

from pathlib import Path

import pytest

from tfharness.domain.models.invocation import Deadline
from tfharness.infrastructure.terraform.executor import TerraformCli
from tfharness.testing.runner import ScriptedProcessRunner


class TestTerraformCli:
    @pytest.mark.asyncio
    async def test_init(
        self, terraform: TerraformCli, scripted_runner: ScriptedProcessRunner, deadline: Deadline
    ) -> None:
        invocation, result = await terraform.init(deadline)
        assert result.succeeded
        assert invocation.args == ("init", "-input=false")
        assert scripted_runner.invocations == [invocation]

    @pytest.mark.asyncio
    async def test_apply_uses_var_file(self, terraform: TerraformCli, deadline: Deadline) -> None:
        invocation, _ = await terraform.apply(deadline)
        assert invocation.args == ("apply", "-auto-approve", "-var-file=terratests/test.tfvars")

    @pytest.mark.asyncio
    async def test_output(self, terraform: TerraformCli, deadline: Deadline) -> None:
        invocation, result = await terraform.output("s3_bucket_region", deadline)
        assert invocation.args == ("output", "-json", "s3_bucket_region")
        assert result.stdout == '"eu-west-1"\n'

    @pytest.mark.asyncio
    async def test_destroy_uses_var_file(self, terraform: TerraformCli, deadline: Deadline) -> None:
        invocation, _ = await terraform.destroy(deadline)
        assert invocation.args == ("destroy", "-auto-approve", "-var-file=terratests/test.tfvars")

    @pytest.mark.asyncio
    async def test_failure_returned_unchanged(
        self, terraform: TerraformCli, scripted_runner: ScriptedProcessRunner, deadline: Deadline
    ) -> None:
        scripted_runner.script("init", "-input=false", returncode=1, stderr="Error: backend")
        _, result = await terraform.init(deadline)
        assert not result.succeeded
        assert result.stderr == "Error: backend"

    def test_invocation_targets_config_root(
        self, scripted_runner: ScriptedProcessRunner, tmp_path: Path, deadline: Deadline
    ) -> None:
        terraform = TerraformCli(
            runner=scripted_runner,
            config_root=tmp_path,
            var_file="vars.tfvars",
            binary="/opt/bin/terraform",
        )
        invocation = terraform.invocation(deadline, "version")
        assert invocation.executable == "/opt/bin/terraform"
        assert invocation.working_dir == tmp_path
        assert invocation.deadline == deadline
        assert terraform.config_root == tmp_path
