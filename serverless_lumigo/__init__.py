"""
serverless-lumigo - Lumigo tracing for Serverless Framework services

This package rewrites the handlers of a service's functions so that they run
under the Lumigo tracer, either through generated wrapper files or through
the tracer layers published by Lumigo.
"""

__version__ = "1.0.0"

from .models import HandlerReference, TracerConfig, WrapperArtifact, PluginConfig

from .error_handling import (
    LumigoPluginError,
    ConfigurationError,
    MalformedHandlerError,
    PluginEnvironmentError,
    RequirementsNotFoundError,
    LayerResolutionError,
)

from .handler import parse_handler, to_python_module
from .generator import render_nodejs_wrapper, render_python_wrapper, build_artifact
from .environment import Environment
from .service import Service
from .plugin import LumigoPlugin

__all__ = [
    "HandlerReference",
    "TracerConfig",
    "WrapperArtifact",
    "PluginConfig",
    "LumigoPluginError",
    "ConfigurationError",
    "MalformedHandlerError",
    "PluginEnvironmentError",
    "RequirementsNotFoundError",
    "LayerResolutionError",
    "parse_handler",
    "to_python_module",
    "render_nodejs_wrapper",
    "render_python_wrapper",
    "build_artifact",
    "Environment",
    "Service",
    "LumigoPlugin",
]
