"""Shell command strings used by the workstation instance and its outputs.

These helpers only interpolate strings, so they accept literal identifiers
as well as CDK tokens (``instance.instance_id`` and friends).
"""
from pathlib import Path
from typing import List, Union

RESOURCES_DIR = "/home/ubuntu/ec2-resources"


def download_key_command(key_id: str) -> str:
    """Fetch the private key that CDK stored in SSM and write it to ``<key_id>.pem``."""
    return (
        f"aws ssm get-parameter --name /ec2/keypair/{key_id} --with-decryption "
        f"--query Parameter.Value --output text > {key_id}.pem && chmod 400 {key_id}.pem"
    )


def ssh_command(key_id: str, public_dns: str, user: str = "ubuntu") -> str:
    return f"ssh -i {key_id}.pem {user}@{public_dns}"


def stop_instance_command(instance_id: str) -> str:
    return f"aws ec2 stop-instances --instance-ids {instance_id}"


def start_instance_command(instance_id: str) -> str:
    return f"aws ec2 start-instances --instance-ids {instance_id}"


def fetch_resources_commands(bucket_name: str, destination: str = RESOURCES_DIR) -> List[str]:
    """Commands that copy the whole bucket into ``destination`` on the instance."""
    return [
        f"mkdir -p {destination}",
        f"aws s3 cp s3://{bucket_name}/ {destination} --recursive",
    ]


def read_boot_script(path: Union[str, Path]) -> str:
    """Read the container runtime install script."""
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def boot_commands(docker_script: str, bucket_name: str, destination: str = RESOURCES_DIR) -> List[str]:
    """User data commands, in the order they run at first boot."""
    return [docker_script, *fetch_resources_commands(bucket_name, destination)]
