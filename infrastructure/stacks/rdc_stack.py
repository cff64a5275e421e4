from pathlib import Path

from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_iam as iam,
    aws_s3 as s3,
    aws_s3_deployment as s3deploy,
    CfnOutput,
    RemovalPolicy,
    Tags,
    Token
)
from constructs import Construct

from .commands import (
    boot_commands,
    download_key_command,
    read_boot_script,
    ssh_command,
    start_instance_command,
    stop_instance_command,
)
from .config import resolve_ami, resolve_instance_type

ROOT_DIR = Path(__file__).parent.parent.parent
RESOURCES_ASSET_DIR = ROOT_DIR / "ec2-resources"
DOCKER_SCRIPT_PATH = ROOT_DIR / "install-docker.sh"

SSH_PORT = 22

INSTANCE_MANAGED_POLICIES = (
    "AmazonEC2FullAccess",
    "AmazonSSMManagedInstanceCore",
    "AmazonS3ReadOnlyAccess",
)


class RdcStack(Stack):
    """Remote development workstation: a Docker-ready EC2 instance seeded from S3."""

    def __init__(self, scope: Construct, construct_id: str, config: dict, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.config = config
        self.stage = config["environment"]

        # Network and access
        self.vpc = self._create_vpc()
        self.key_pair = self._create_key_pair()
        self.security_group = self._create_security_group()

        # Files copied onto the instance at first boot
        self.bucket = self._create_bucket()
        self.deployment = self._deploy_resources()

        # Instance
        self.instance_role = self._create_instance_role()
        self.instance = self._create_instance()
        self._configure_user_data()

        self._apply_tags()
        self._create_outputs()

    def _create_vpc(self) -> ec2.Vpc:
        """Create VPC with the default public/private subnet layout."""
        return ec2.Vpc(
            self,
            "RdcVpc",
            ip_addresses=ec2.IpAddresses.cidr(self.config["vpc"]["cidr"]),
            max_azs=self.config["vpc"]["maxAzs"]
        )

    def _create_key_pair(self) -> ec2.KeyPair:
        # CDK stores the private key in SSM under /ec2/keypair/<key pair id>
        return ec2.KeyPair(
            self,
            "RdcKeyPair",
            key_pair_name=self.config["keyPair"]["name"]
        )

    def _create_security_group(self) -> ec2.SecurityGroup:
        """Create security group that only lets SSH in."""
        security_group = ec2.SecurityGroup(
            self,
            "RdcSecurityGroup",
            vpc=self.vpc,
            description="Allow SSH access",
            allow_all_outbound=True
        )

        security_group.add_ingress_rule(
            ec2.Peer.any_ipv4(),
            ec2.Port.tcp(SSH_PORT),
            "Allow SSH access"
        )

        return security_group

    def _create_bucket(self) -> s3.Bucket:
        """Create bucket holding the instance resources, emptied and deleted with the stack."""
        return s3.Bucket(
            self,
            "RdcBucket",
            removal_policy=RemovalPolicy.DESTROY,
            auto_delete_objects=True
        )

    def _deploy_resources(self) -> s3deploy.BucketDeployment:
        """Upload the local ec2-resources folder to the bucket."""
        return s3deploy.BucketDeployment(
            self,
            "DeployResources",
            sources=[s3deploy.Source.asset(str(RESOURCES_ASSET_DIR))],
            destination_bucket=self.bucket
        )

    def _create_instance_role(self) -> iam.Role:
        return iam.Role(
            self,
            "InstanceRole",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(name)
                for name in INSTANCE_MANAGED_POLICIES
            ],
            description=f"Role for the RDC instance in {self.stage} environment"
        )

    def _create_instance(self) -> ec2.Instance:
        """Create the workstation instance in a public subnet."""
        region = None if Token.is_unresolved(self.region) else self.region

        instance = ec2.Instance(
            self,
            "RdcInstance",
            vpc=self.vpc,
            instance_type=resolve_instance_type(self.config),
            machine_image=ec2.MachineImage.generic_linux(
                {region: resolve_ami(self.config, region)}
            ),
            key_pair=self.key_pair,
            security_group=self.security_group,
            role=self.instance_role,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PUBLIC
            )
        )

        # The boot script copies the bucket, so the upload has to finish first
        instance.node.add_dependency(self.deployment)

        return instance

    def _configure_user_data(self):
        """Install Docker, then pull the bucket contents onto the instance."""
        docker_script = read_boot_script(DOCKER_SCRIPT_PATH)
        self.instance.add_user_data(
            *boot_commands(docker_script, self.bucket.bucket_name)
        )

    def _apply_tags(self):
        Tags.of(self).add("Project", self.config["projectName"])
        Tags.of(self).add("Environment", self.stage)
        for key, value in self.config.get("tags", {}).items():
            Tags.of(self).add(key, value)

    def _create_outputs(self):
        """Create stack outputs."""
        key_id = self.key_pair.key_pair_id
        instance_id = self.instance.instance_id

        CfnOutput(
            self,
            "DownloadKeyCommand",
            value=download_key_command(key_id),
            description="Download the private key from SSM Parameter Store"
        )

        CfnOutput(
            self,
            "SSHCommand",
            value=ssh_command(
                key_id,
                self.instance.instance_public_dns_name,
                self.config["instance"]["sshUser"]
            ),
            description="Connect to the instance over SSH"
        )

        CfnOutput(
            self,
            "StopInstanceCommand",
            value=stop_instance_command(instance_id),
            description="Stop the instance"
        )

        CfnOutput(
            self,
            "StartInstanceCommand",
            value=start_instance_command(instance_id),
            description="Start the instance"
        )

        CfnOutput(
            self,
            "ResourcesBucketName",
            value=self.bucket.bucket_name,
            description=f"Bucket holding ec2-resources for {self.stage} environment"
        )
