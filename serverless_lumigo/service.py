"""
Service definition as seen by the plugin.

The host framework owns the function registry and provider metadata; this
class is the shape the plugin reads and mutates. Function declarations are
plain dictionaries and are changed in place.
"""

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class Service:
    """A deployable service: functions, provider metadata and custom settings."""

    functions: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    provider: Dict[str, Any] = field(default_factory=dict)
    custom: Dict[str, Any] = field(default_factory=dict)
    package: Optional[Dict[str, Any]] = None
    plugins: Union[List[str], Dict[str, Any], None] = None
    service_path: str = field(default_factory=os.getcwd)
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, doc: Dict[str, Any], service_path: Optional[str] = None) -> 'Service':
        """Build a service from a parsed serverless.json document."""
        return cls(
            functions=doc.get("functions") or {},
            provider=doc.get("provider") or {},
            custom=doc.get("custom") or {},
            package=doc.get("package"),
            plugins=doc.get("plugins"),
            service_path=os.path.abspath(service_path or os.getcwd()),
            name=doc.get("service"),
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {}
        if self.name is not None:
            doc["service"] = self.name
        doc["provider"] = copy.deepcopy(self.provider)
        if self.plugins is not None:
            doc["plugins"] = copy.deepcopy(self.plugins)
        if self.custom:
            doc["custom"] = copy.deepcopy(self.custom)
        if self.package is not None:
            doc["package"] = copy.deepcopy(self.package)
        doc["functions"] = copy.deepcopy(self.functions)
        return doc

    def get_all_functions(self) -> List[str]:
        return list(self.functions.keys())

    def get_function(self, name: str) -> Dict[str, Any]:
        if name not in self.functions:
            raise KeyError(f"Function [{name}] is not declared in the service")
        return self.functions[name]

    @property
    def runtime(self) -> Optional[str]:
        return self.provider.get("runtime")

    @property
    def region(self) -> str:
        return self.provider.get("region") or "us-east-1"

    @property
    def plugin_names(self) -> List[str]:
        """Plugin names, whether declared as a list or as {modules: [...]}."""
        if isinstance(self.plugins, dict):
            return list(self.plugins.get("modules") or [])
        return list(self.plugins or [])
