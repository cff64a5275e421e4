"""Unit tests for the instance boot script and output command strings."""
from pathlib import Path
import pytest

from stacks.commands import (
    RESOURCES_DIR,
    boot_commands,
    download_key_command,
    fetch_resources_commands,
    read_boot_script,
    ssh_command,
    start_instance_command,
    stop_instance_command,
)

ROOT_DIR = Path(__file__).parent.parent.parent


class TestOutputCommands:
    """Test the command strings emitted as stack outputs."""

    def test_download_key_command(self):
        assert download_key_command("abc123") == (
            "aws ssm get-parameter --name /ec2/keypair/abc123 --with-decryption "
            "--query Parameter.Value --output text > abc123.pem && chmod 400 abc123.pem"
        )

    def test_ssh_command(self):
        dns = "ec2-13-112-0-1.ap-northeast-1.compute.amazonaws.com"

        assert ssh_command("abc123", dns) == f"ssh -i abc123.pem ubuntu@{dns}"

    def test_ssh_command_custom_user(self):
        assert ssh_command("abc123", "host", user="admin") == "ssh -i abc123.pem admin@host"

    def test_stop_instance_command(self):
        assert stop_instance_command("i-0123") == "aws ec2 stop-instances --instance-ids i-0123"

    def test_start_instance_command(self):
        assert start_instance_command("i-0123") == "aws ec2 start-instances --instance-ids i-0123"


class TestBootScript:
    """Test the user data command sequence."""

    def test_fetch_resources_commands(self):
        assert fetch_resources_commands("my-bucket") == [
            "mkdir -p /home/ubuntu/ec2-resources",
            "aws s3 cp s3://my-bucket/ /home/ubuntu/ec2-resources --recursive",
        ]

    def test_boot_commands_order(self):
        commands = boot_commands("echo install", "my-bucket")

        assert commands == [
            "echo install",
            f"mkdir -p {RESOURCES_DIR}",
            f"aws s3 cp s3://my-bucket/ {RESOURCES_DIR} --recursive",
        ]

    def test_install_script_installs_docker(self):
        script = read_boot_script(ROOT_DIR / "install-docker.sh")

        assert script.startswith("#!/bin/bash")
        assert "docker-ce" in script
        assert "usermod -aG docker ubuntu" in script

    def test_missing_boot_script_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_boot_script(tmp_path / "missing.sh")
