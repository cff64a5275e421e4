#!/usr/bin/env python3
import logging
import os

import aws_cdk as cdk

from stacks import RdcStack, load_config

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


app = cdk.App()

# Get stage from context (defaults to 'dev' for local development)
stage = app.node.try_get_context("stage") or "dev"

# Load configuration for the stage
config = load_config(stage)

# Create the stack with environment-specific naming
stack_name = f"{config['stackNamePrefix']}-RdcStack"
region = config["region"]

logger.info(f"Synthesizing {stack_name} for stage {stage} in {region}")

RdcStack(
    app,
    stack_name,
    config,
    env=cdk.Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
        region=region,
    ),
)

app.synth()
