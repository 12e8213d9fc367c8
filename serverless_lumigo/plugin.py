"""
Serverless Framework plugin that wraps function handlers with the Lumigo tracer.

Before packaging, every eligible function gets a generated wrapper under the
_lumigo folder of the service and its handler is pointed at the wrapper. After
the deployment artifacts are created the folder is removed again and, for
Node.js services, the tracer dependency is uninstalled if this plugin put it
there. In layer mode handlers are redirected to the entry point of a tracer
layer instead and nothing is written locally.
"""

import json
import os
import posixpath
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .environment import Environment
from .error_handling import (
    ConfigurationError,
    GracefulErrorHandler,
    PluginEnvironmentError,
    RequirementsNotFoundError,
)
from .generator import build_artifact
from .handler import parse_handler
from .layers import (
    LAYER_HANDLERS,
    ORIGINAL_HANDLER_ENV,
    TRACER_TOKEN_ENV,
    is_lumigo_layer,
    layer_arn,
    resolve_latest_version,
)
from .logging_utils import get_logger, performance_timer
from .models import (
    NODEJS,
    NPM,
    PYTHON,
    UNSUPPORTED,
    WRAPPER_FOLDER,
    YARN,
    PluginConfig,
    TracerConfig,
    is_enabled,
    runtime_family,
)

NODE_TRACER_PACKAGE = "@lumigo/tracer"
PYTHON_TRACER_PACKAGE = "lumigo_tracer"
PYTHON_REQUIREMENTS_PLUGIN = "serverless-python-requirements"
DEFAULT_REQUIREMENTS_FILE = "requirements.txt"
WRAPPER_GLOB = f"{WRAPPER_FOLDER}/*"
# Written when a wrap pass installs the Node.js tracer itself, so that a
# cleanup run in another process knows to uninstall it.
INSTALL_MARKER = posixpath.join(WRAPPER_FOLDER, ".tracer-installed")

INSTALL_COMMANDS = {
    NPM: "npm install {package}@{version}",
    YARN: "yarn add {package}@{version}",
}

UNINSTALL_COMMANDS = {
    NPM: "npm uninstall {package}",
    YARN: "yarn remove {package}",
}

PYTHON_TRACER_PATTERN = re.compile(r"lumigo[_-]tracer", re.IGNORECASE)

FunctionEntry = Tuple[str, Dict[str, Any]]


class LumigoPlugin:
    """
    Rewrites function handlers so that every invocation is traced.

    The host wires its lifecycle events to on_prepare, on_single_deploy and
    on_artifacts_created (see the hooks property).
    """

    def __init__(self, service, options: Optional[Mapping[str, Any]] = None,
                 environment: Optional[Environment] = None,
                 cli_log: Optional[Callable[[str], Any]] = None,
                 verbose: Optional[bool] = None,
                 lambda_client=None):
        """
        Args:
            service: The service definition (function registry and provider metadata)
            options: Host command-line options, e.g. {"function": "hello"}
            environment: Filesystem and process adapter; defaults to one rooted at the service
            cli_log: Host sink for log lines
            verbose: Force verbose output on or off; defaults to SLS_DEBUG
            lambda_client: boto3 Lambda client used to resolve the latest layer version
        """
        self.service = service
        self.options = dict(options or {})
        self.environment = environment or Environment(service.service_path)
        self.logger = get_logger(__name__, cli_log=cli_log, verbose=verbose)
        self.config = PluginConfig.from_service(service)
        self.lambda_client = lambda_client

        # Whether package.json declared the tracer before this plugin touched it.
        # Set once, the first time a Node.js pass needs it.
        self.node_tracer_preinstalled: Optional[bool] = None

        self.logger.add_secret(self.config.token)
        self.logger.debug("Plugin configured", **self.config.to_dict())

    @property
    def hooks(self) -> Dict[str, Callable[[], None]]:
        return {
            "after:package:initialize": self.on_prepare,
            "after:deploy:function:initialize": self.on_single_deploy,
            "after:package:createDeploymentArtifacts": self.on_artifacts_created,
        }

    @property
    def folder_path(self) -> str:
        return os.path.join(self.service.service_path, WRAPPER_FOLDER)

    def on_prepare(self) -> None:
        self.wrap_functions()

    def on_single_deploy(self) -> None:
        function_name = self.options.get("function")
        self.wrap_functions([function_name] if function_name else [])

    def on_artifacts_created(self) -> None:
        self.cleanup()

    def get_functions_to_wrap(self, function_names: Optional[Sequence[str]] = None) -> Tuple[str, List[FunctionEntry]]:
        """
        Resolve the runtime family and the eligible functions.

        Args:
            function_names: Restrict to these functions; all functions when None

        Returns:
            Tuple[str, List[FunctionEntry]]: The runtime family and (name, declaration)
            pairs in declaration order. Declarations are the live objects.
        """
        runtime = runtime_family(self.service.runtime)
        if runtime == UNSUPPORTED:
            self.logger.log(f"unsupported runtime: [{self.service.runtime}], skipped...")
            return UNSUPPORTED, []

        if function_names is None:
            function_names = self.service.get_all_functions()

        functions = []
        for name in self.service.get_all_functions():
            if name not in function_names:
                continue
            declaration = self.service.get_function(name)
            if not is_enabled(declaration):
                self.logger.verbose_log(f"[{name}] has lumigo disabled, skipped...")
                continue
            functions.append((name, declaration))

        return runtime, functions

    @performance_timer("wrap_functions")
    def wrap_functions(self, function_names: Optional[Sequence[str]] = None) -> None:
        runtime, functions = self.get_functions_to_wrap(function_names)

        self.logger.log(f"there are {len(functions)} function(s) to wrap...")
        for name, declaration in functions:
            self.logger.verbose_log(json.dumps({"localName": name, **declaration}, default=str))

        if not functions:
            return

        tracer = self.config.tracer_config()

        if self.config.use_layers:
            self.add_layers(runtime, functions, tracer)
            return

        if runtime == NODEJS:
            self.install_lumigo_nodejs()
        elif runtime == PYTHON:
            self.ensure_lumigo_python_is_installed(functions)

        for name, declaration in functions:
            handler = self.create_wrapped_function(name, declaration, runtime, tracer)
            self.logger.verbose_log(f"setting [{name}]'s handler to [{handler}]...")
            declaration["handler"] = handler

        self.include_wrapper_folder(functions)

    @performance_timer("cleanup")
    def cleanup(self) -> None:
        runtime, functions = self.get_functions_to_wrap()

        if not functions:
            return

        node_install = runtime == NODEJS and not self.config.use_layers
        if node_install:
            self.load_install_marker()

        self.clean_folder()

        if node_install:
            self.uninstall_lumigo_nodejs()

    def create_wrapped_function(self, name: str, declaration: Mapping[str, Any],
                                runtime: str, tracer: TracerConfig) -> str:
        """
        Generate and write the wrapper for one function.

        Returns:
            str: The new handler, e.g. _lumigo/hello.world
        """
        self.logger.verbose_log(f"wrapping [{declaration.get('handler')}]...")

        ref = parse_handler(declaration.get("handler"))
        artifact = build_artifact(
            name, ref, tracer, runtime,
            unzip_requirements=runtime == PYTHON and self.config.python_requirements_zip,
        )

        self.logger.verbose_log(
            f"writing wrapper function to [{os.path.join(self.service.service_path, artifact.path)}]..."
        )
        self.environment.output_file(artifact.path, artifact.content)
        return artifact.handler

    def include_wrapper_folder(self, functions: List[FunctionEntry]) -> None:
        """Add the wrapper folder to the package include lists."""
        if self.service.package is not None:
            _add_include(self.service.package)

        if self.config.package_individually:
            for _, declaration in functions:
                package = declaration.get("package")
                if isinstance(package, dict):
                    _add_include(package)

    def add_layers(self, runtime: str, functions: List[FunctionEntry], tracer: TracerConfig) -> None:
        """Point each function at the tracer layer's entry point."""
        version = self.config.layer_version(runtime)
        if version is None and self.config.resolve_layer_version:
            version = resolve_latest_version(self.service.region, runtime, client=self.lambda_client)

        arn = layer_arn(self.service.region, runtime, version)
        entry_point = LAYER_HANDLERS[runtime]

        for name, declaration in functions:
            environment = declaration.get("environment") or {}
            if declaration.get("handler") != entry_point:
                environment[ORIGINAL_HANDLER_ENV] = declaration.get("handler")
            environment[TRACER_TOKEN_ENV] = tracer.token
            declaration["environment"] = environment

            layers = [layer for layer in declaration.get("layers") or [] if not is_lumigo_layer(layer)]
            layers.append(arn)
            declaration["layers"] = layers

            self.logger.verbose_log(f"setting [{name}]'s handler to [{entry_point}] with layer [{arn}]...")
            declaration["handler"] = entry_point

    def is_node_tracer_installed(self) -> bool:
        """
        Whether package.json already declared the Node.js tracer.

        Evaluated once per plugin lifetime. A missing or unparsable package.json
        counts as not installed.
        """
        if self.node_tracer_preinstalled is not None:
            return self.node_tracer_preinstalled

        installed = False
        with GracefulErrorHandler("node_tracer_lookup") as handler:
            installed = self.environment.has_dependency(NODE_TRACER_PACKAGE)

        if handler.error_occurred:
            self.logger.verbose_log(f"error when trying to check if {NODE_TRACER_PACKAGE} is already installed...")
            self.logger.verbose_log(handler.error_details['message'])
            self.logger.verbose_log(f"assume {NODE_TRACER_PACKAGE} has not been installed...")
            installed = False

        self.node_tracer_preinstalled = installed
        return installed

    def install_lumigo_nodejs(self) -> None:
        if self.config.skip_install_node_tracer:
            self.logger.verbose_log(f"skipInstallNodeTracer is set, skipped installing {NODE_TRACER_PACKAGE}...")
            return

        if self.is_node_tracer_installed():
            self.logger.verbose_log(f"{NODE_TRACER_PACKAGE} is already installed, skipped...")
            return

        self.logger.log(f"installing {NODE_TRACER_PACKAGE}...")
        command = self._package_manager_command(INSTALL_COMMANDS, version=self.config.tracer_version)
        details = self.environment.exec_sync(command)
        self.logger.verbose_log(details)
        self.environment.output_file(INSTALL_MARKER, f"{NODE_TRACER_PACKAGE}\n")

    def load_install_marker(self) -> None:
        """
        Pick up an install made by a wrap pass in another process.

        The in-memory state wins when this plugin already computed it.
        """
        if self.node_tracer_preinstalled is not None:
            return

        if self.environment.path_exists(INSTALL_MARKER):
            self.logger.verbose_log(f"{NODE_TRACER_PACKAGE} was installed by a previous wrap...")
            self.node_tracer_preinstalled = False

    def uninstall_lumigo_nodejs(self) -> None:
        if self.config.skip_install_node_tracer:
            return

        if self.is_node_tracer_installed():
            return

        self.logger.log(f"uninstalling {NODE_TRACER_PACKAGE}...")
        command = self._package_manager_command(UNINSTALL_COMMANDS)
        details = self.environment.exec_sync(command)
        self.logger.verbose_log(details)

    def _package_manager_command(self, commands: Mapping[str, str], **kwargs) -> str:
        template = commands.get(self.config.node_package_manager)
        if template is None:
            raise ConfigurationError("No Node.js package manager found. Please install either NPM or Yarn.")
        return template.format(package=NODE_TRACER_PACKAGE, **kwargs)

    def ensure_lumigo_python_is_installed(self, functions: List[FunctionEntry]) -> None:
        """
        Check that the requirements file(s) declare the Python tracer.

        Raises:
            RequirementsNotFoundError: If a requirements file is missing
            PluginEnvironmentError: If a requirements file cannot be read
            ConfigurationError: If a requirements file does not mention the tracer
        """
        self.logger.log(f"checking if {PYTHON_TRACER_PACKAGE} is installed...")

        if self.config.package_individually:
            self.logger.log("functions are packed individually, ensuring each function has a requirements.txt...")
            filenames = []
            for _, declaration in functions:
                # functions/hello.world.handler -> functions/requirements.txt
                directory = parse_handler(declaration.get("handler")).directory
                filename = self.config.python_requirements_file or posixpath.join(directory, DEFAULT_REQUIREMENTS_FILE)
                if filename not in filenames:
                    filenames.append(filename)
        else:
            self.logger.log("ensuring there is a requirements.txt or equivalent...")
            filenames = [self.config.python_requirements_file or DEFAULT_REQUIREMENTS_FILE]

        for filename in filenames:
            self._ensure_tracer_in_requirements(filename)

    def _ensure_tracer_in_requirements(self, filename: str) -> None:
        if not self.environment.path_exists(filename):
            message = f"{filename} is not found."
            if PYTHON_REQUIREMENTS_PLUGIN not in self.service.plugin_names:
                message += (
                    f"\nConsider using the {PYTHON_REQUIREMENTS_PLUGIN} plugin "
                    "to help you package Python dependencies."
                )
            raise RequirementsNotFoundError(message)

        try:
            requirements = self.environment.read_file(filename, "utf8")
        except (OSError, UnicodeDecodeError) as e:
            raise PluginEnvironmentError(f"Unable to read {filename}: {e}") from e

        if not PYTHON_TRACER_PATTERN.search(requirements):
            raise ConfigurationError(f"{PYTHON_TRACER_PACKAGE} is not installed. Please check {filename}.")

    def clean_folder(self) -> None:
        self.logger.verbose_log(f"removing the temporary folder [{self.folder_path}]...")
        self.environment.remove(self.folder_path)


def _add_include(package: Dict[str, Any]) -> None:
    include = package.get("include")
    if include is None:
        include = []
        package["include"] = include
    if WRAPPER_GLOB not in include:
        include.append(WRAPPER_GLOB)
