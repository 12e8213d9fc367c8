"""
Wrapper code generation.

Produces the source of the files written to the _lumigo folder. Each wrapper
imports the tracer and the user's handler, and re-exports a traced handler
under the original exported name. Nothing here touches the filesystem.
"""

import posixpath
from typing import List

from .error_handling import ConfigurationError
from .handler import to_python_module
from .models import NODEJS, PYTHON, WRAPPER_FOLDER, HandlerReference, TracerConfig, WrapperArtifact

EXTENSIONS = {
    NODEJS: "js",
    PYTHON: "py",
}

NODEJS_TEMPLATE = """
const tracer = require("@lumigo/tracer")({{
\t{parameters}
}});
const handler = require('../{module_path}').{func_name};

module.exports.{func_name} = tracer.trace(handler);
"""

PYTHON_TEMPLATE = """{unzip_stanza}
from lumigo_tracer import lumigo_tracer
from {module} import {func_name} as {alias}

@lumigo_tracer({parameters})
def {func_name}(event, context):
  return {alias}(event, context)
"""

USER_HANDLER_ALIAS = "userHandler"

UNZIP_REQUIREMENTS_STANZA = """
try:
  import unzip_requirements
except ImportError:
  pass
"""


def quote(value: str) -> str:
    """Render a single-quoted string literal valid in both JavaScript and Python."""
    escaped = (
        str(value)
        .replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f"'{escaped}'"


def nodejs_tracer_parameters(tracer: TracerConfig) -> str:
    parameters: List[str] = [f"token:{quote(tracer.token)}"]
    if tracer.edge_host:
        parameters.append(f"edgeHost:{quote(tracer.edge_host)}")
    if tracer.enhance_print is not None:
        parameters.append(f"enhancePrint:{'true' if tracer.enhance_print else 'false'}")
    return ",".join(parameters)


def python_tracer_parameters(tracer: TracerConfig) -> str:
    parameters: List[str] = [f"token={quote(tracer.token)}"]
    if tracer.edge_host:
        parameters.append(f"edge_host={quote(tracer.edge_host)}")
    if tracer.enhance_print is not None:
        parameters.append(f"enhance_print={'True' if tracer.enhance_print else 'False'}")
    return ",".join(parameters)


def user_handler_alias(func_name: str) -> str:
    """The name the wrapper binds the user's handler to; never the wrapper's own name."""
    if func_name == USER_HANDLER_ALIAS:
        return f"_{USER_HANDLER_ALIAS}"
    return USER_HANDLER_ALIAS


def render_nodejs_wrapper(ref: HandlerReference, tracer: TracerConfig) -> str:
    """
    Render a callback-style wrapper for the Node.js tracer.

    The handler is required relative to the _lumigo folder, one level below
    the service root.
    """
    return NODEJS_TEMPLATE.format(
        parameters=nodejs_tracer_parameters(tracer),
        module_path=ref.module_path.replace("\\", "/"),
        func_name=ref.func_name,
    )


def render_python_wrapper(ref: HandlerReference, tracer: TracerConfig,
                          unzip_requirements: bool = False) -> str:
    """
    Render a decorator-style wrapper for the Python tracer.

    Args:
        ref: The user's handler
        tracer: Tracer settings rendered into the decorator call
        unzip_requirements: Prepend the import used by
            serverless-python-requirements when dependencies are zipped
    """
    return PYTHON_TEMPLATE.format(
        unzip_stanza=UNZIP_REQUIREMENTS_STANZA if unzip_requirements else "",
        module=to_python_module(ref.module_path),
        func_name=ref.func_name,
        alias=user_handler_alias(ref.func_name),
        parameters=python_tracer_parameters(tracer),
    )


def render_wrapper(ref: HandlerReference, tracer: TracerConfig, runtime: str,
                   unzip_requirements: bool = False) -> str:
    if runtime == NODEJS:
        return render_nodejs_wrapper(ref, tracer)
    if runtime == PYTHON:
        return render_python_wrapper(ref, tracer, unzip_requirements)
    raise ConfigurationError(f"serverless-lumigo: cannot generate a wrapper for runtime [{runtime}]")


def build_artifact(local_name: str, ref: HandlerReference, tracer: TracerConfig,
                   runtime: str, unzip_requirements: bool = False) -> WrapperArtifact:
    """
    Build the wrapper artifact for one function.

    Args:
        local_name: The function's key in the service definition
        ref: The function's parsed handler
        tracer: Tracer settings
        runtime: NODEJS or PYTHON
        unzip_requirements: See render_python_wrapper

    Returns:
        WrapperArtifact: e.g. path _lumigo/hello.js with handler _lumigo/hello.world
    """
    content = render_wrapper(ref, tracer, runtime, unzip_requirements)
    path = posixpath.join(WRAPPER_FOLDER, f"{local_name}.{EXTENSIONS[runtime]}")
    handler = posixpath.join(WRAPPER_FOLDER, f"{local_name}.{ref.func_name}")
    return WrapperArtifact(path=path, content=content, handler=handler)
