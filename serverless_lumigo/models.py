"""
Data models for the serverless-lumigo plugin.

This module contains the core data classes used throughout the plugin: the
parsed handler reference, the tracer settings rendered into wrappers, the
generated wrapper artifact and the plugin configuration read from the service.
"""

import posixpath
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .error_handling import ConfigurationError


NODEJS = "nodejs"
PYTHON = "python"
UNSUPPORTED = "unsupported"

NPM = "npm"
YARN = "yarn"

WRAPPER_FOLDER = "_lumigo"


@dataclass(frozen=True)
class HandlerReference:
    """A handler string split at its last dot."""

    module_path: str
    func_name: str

    @property
    def raw(self) -> str:
        """Reconstruct the original handler string."""
        return f"{self.module_path}.{self.func_name}"

    @property
    def directory(self) -> str:
        """Directory part of the module path, e.g. functions/hello.world -> functions."""
        return posixpath.dirname(self.module_path.replace("\\", "/"))


@dataclass(frozen=True)
class TracerConfig:
    """Settings passed to the tracer constructor in generated wrappers."""

    token: str
    edge_host: Optional[str] = None
    enhance_print: Optional[bool] = None


@dataclass(frozen=True)
class WrapperArtifact:
    """A generated wrapper file and the handler that points into it."""

    path: str
    content: str
    handler: str


def parse_boolish(value: Any) -> Optional[bool]:
    """
    Interpret booleans and boolean-like strings from the service configuration.

    Args:
        value: A bool, a string such as "true"/"False"/"1", or None

    Returns:
        Optional[bool]: The parsed value, or None when not configured
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass
class PluginConfig:
    """Configuration for the plugin, populated once from the service definition."""

    token: Optional[str] = None
    edge_host: Optional[str] = None
    node_package_manager: str = NPM
    pin_version: Optional[str] = None
    skip_install_node_tracer: bool = False
    use_layers: bool = False
    node_layer_version: Optional[int] = None
    python_layer_version: Optional[int] = None
    resolve_layer_version: bool = False
    enhance_print: Optional[bool] = None
    python_requirements_file: Optional[str] = None
    python_requirements_zip: bool = False
    package_individually: bool = False

    @classmethod
    def from_service(cls, service) -> 'PluginConfig':
        """Create configuration from the service's custom and package sections."""
        custom = service.custom or {}
        lumigo = custom.get("lumigo") or {}
        python_requirements = custom.get("pythonRequirements") or {}
        package = service.package or {}

        pin_version = lumigo.get("pinVersion")

        return cls(
            token=lumigo.get("token"),
            edge_host=lumigo.get("edgeHost"),
            node_package_manager=str(lumigo.get("nodePackageManager", NPM)).lower(),
            pin_version=str(pin_version) if pin_version is not None else None,
            skip_install_node_tracer=bool(parse_boolish(lumigo.get("skipInstallNodeTracer"))),
            use_layers=bool(parse_boolish(lumigo.get("useLayers"))),
            node_layer_version=_optional_int(lumigo.get("nodeLayerVersion"), "nodeLayerVersion"),
            python_layer_version=_optional_int(lumigo.get("pythonLayerVersion"), "pythonLayerVersion"),
            resolve_layer_version=bool(parse_boolish(lumigo.get("resolveLayerVersion"))),
            enhance_print=parse_boolish(lumigo.get("enhance_print")),
            python_requirements_file=python_requirements.get("fileName"),
            python_requirements_zip=bool(parse_boolish(python_requirements.get("zip"))),
            package_individually=bool(parse_boolish(package.get("individually"))),
        )

    @property
    def tracer_version(self) -> str:
        """Version specifier used when installing the Node.js tracer."""
        return self.pin_version or "latest"

    def tracer_config(self) -> TracerConfig:
        """
        Build the tracer settings, validating the token.

        Raises:
            ConfigurationError: If the token is missing or empty
        """
        if not isinstance(self.token, str) or not self.token.strip():
            raise ConfigurationError(
                "serverless-lumigo: Unable to find token. "
                "Please follow https://github.com/lumigo-io/serverless-lumigo"
            )

        return TracerConfig(
            token=self.token,
            edge_host=self.edge_host or None,
            enhance_print=self.enhance_print,
        )

    def layer_version(self, runtime: str) -> Optional[int]:
        """Pinned layer version for the given runtime family."""
        if runtime == NODEJS:
            return self.node_layer_version
        if runtime == PYTHON:
            return self.python_layer_version
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging, with the token masked."""
        return {
            'token': '***' if self.token else None,
            'edge_host': self.edge_host,
            'node_package_manager': self.node_package_manager,
            'pin_version': self.pin_version,
            'skip_install_node_tracer': self.skip_install_node_tracer,
            'use_layers': self.use_layers,
            'node_layer_version': self.node_layer_version,
            'python_layer_version': self.python_layer_version,
            'resolve_layer_version': self.resolve_layer_version,
            'enhance_print': self.enhance_print,
            'python_requirements_file': self.python_requirements_file,
            'python_requirements_zip': self.python_requirements_zip,
            'package_individually': self.package_individually,
        }


def _optional_int(value: Union[int, str, None], key: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"serverless-lumigo: {key} must be an integer, got [{value}]") from e


def runtime_family(runtime: Optional[str]) -> str:
    """
    Map a provider runtime string to a supported runtime family.

    Returns:
        str: NODEJS for nodejs*, PYTHON for python3*, UNSUPPORTED otherwise
    """
    runtime = runtime or ""
    if runtime.startswith("nodejs"):
        return NODEJS
    if runtime.startswith("python3"):
        return PYTHON
    return UNSUPPORTED


def is_enabled(declaration: Mapping[str, Any]) -> bool:
    """A function is enabled unless it carries lumigo.enabled set to false."""
    lumigo = declaration.get("lumigo") or {}
    enabled = parse_boolish(lumigo.get("enabled"))
    return enabled is not False
