"""
Tracer layer references.

In layer mode the tracer comes from a layer published by Lumigo instead of a
generated wrapper. This module builds the layer ARN for a region and runtime,
and can look up the newest published version through the Lambda API.
"""

from typing import Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .error_handling import LayerResolutionError
from .logging_utils import get_logger, performance_timer
from .models import NODEJS, PYTHON

logger = get_logger(__name__)

LUMIGO_LAYER_ACCOUNT = "114300393969"
LATEST_VERSION = "latest"

LAYER_NAMES = {
    NODEJS: "lumigo-node-tracer",
    PYTHON: "lumigo-python-tracer",
}

LAYER_HANDLERS = {
    NODEJS: "lumigo-auto-instrument.handler",
    PYTHON: "/opt/python/lumigo_tracer._handler",
}

ORIGINAL_HANDLER_ENV = "LUMIGO_ORIGINAL_HANDLER"
TRACER_TOKEN_ENV = "LUMIGO_TRACER_TOKEN"


def layer_name_arn(region: str, runtime: str) -> str:
    """ARN of the layer without a version, e.g. arn:aws:lambda:us-east-1:114300393969:layer:lumigo-node-tracer."""
    return f"arn:aws:lambda:{region}:{LUMIGO_LAYER_ACCOUNT}:layer:{LAYER_NAMES[runtime]}"


def layer_arn(region: str, runtime: str, version: Union[int, str, None] = None) -> str:
    """
    Build a versioned layer ARN.

    Args:
        region: AWS region of the deployment
        runtime: NODEJS or PYTHON
        version: Layer version; None means the "latest" marker

    Returns:
        str: e.g. arn:aws:lambda:us-east-1:114300393969:layer:lumigo-python-tracer:87
    """
    if version is None:
        version = LATEST_VERSION
    return f"{layer_name_arn(region, runtime)}:{version}"


def is_lumigo_layer(arn: str) -> bool:
    return isinstance(arn, str) and f":{LUMIGO_LAYER_ACCOUNT}:layer:lumigo-" in arn


@performance_timer("layer_version_lookup")
def resolve_latest_version(region: str, runtime: str, client=None) -> int:
    """
    Look up the highest published version of the tracer layer.

    Args:
        region: AWS region to query
        runtime: NODEJS or PYTHON
        client: Optional boto3 Lambda client

    Returns:
        int: The newest layer version

    Raises:
        LayerResolutionError: If the lookup fails or returns no versions
    """
    if client is None:
        client = boto3.client("lambda", region_name=region)

    name = layer_name_arn(region, runtime)
    latest: Optional[int] = None

    try:
        paginator = client.get_paginator("list_layer_versions")
        for page in paginator.paginate(LayerName=name):
            for layer_version in page.get("LayerVersions", []):
                version = layer_version.get("Version")
                if version is not None and (latest is None or version > latest):
                    latest = version
    except (BotoCoreError, ClientError) as e:
        logger.error("Failed to list layer versions", layer=name, region=region,
                     error=str(e), error_type=type(e).__name__)
        raise LayerResolutionError(
            f"serverless-lumigo: unable to resolve the latest version of [{name}]: {e}"
        ) from e

    if latest is None:
        raise LayerResolutionError(f"serverless-lumigo: no published versions found for [{name}]")

    logger.info("Resolved latest layer version", layer=name, version=latest)
    return latest
