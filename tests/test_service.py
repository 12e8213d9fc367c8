"""
Unit tests for the service definition.
"""

import os

import pytest

from serverless_lumigo.service import Service


class TestService:
    """Test cases for Service."""

    def test_from_dict(self, tmp_path):
        doc = {
            "service": "lumigo-test",
            "provider": {"name": "aws", "runtime": "python3.8", "region": "eu-west-1"},
            "plugins": ["serverless-lumigo"],
            "custom": {"lumigo": {"token": "t"}},
            "package": {"individually": True},
            "functions": {"hello": {"handler": "hello.world"}},
        }

        service = Service.from_dict(doc, service_path=str(tmp_path))

        assert service.name == "lumigo-test"
        assert service.runtime == "python3.8"
        assert service.region == "eu-west-1"
        assert service.custom == {"lumigo": {"token": "t"}}
        assert service.package == {"individually": True}
        assert service.service_path == os.path.abspath(str(tmp_path))
        assert service.get_all_functions() == ["hello"]
        assert service.to_dict() == doc

    def test_defaults(self):
        service = Service.from_dict({})

        assert service.functions == {}
        assert service.runtime is None
        assert service.region == "us-east-1"
        assert service.package is None
        assert service.plugin_names == []

    def test_get_function_returns_live_declaration(self):
        service = Service(functions={"hello": {"handler": "hello.world"}})

        service.get_function("hello")["handler"] = "_lumigo/hello.world"

        assert service.functions["hello"]["handler"] == "_lumigo/hello.world"

    def test_get_unknown_function(self):
        with pytest.raises(KeyError):
            Service().get_function("missing")

    def test_plugin_names_from_modules(self):
        service = Service(plugins={"modules": ["serverless-python-requirements"], "localPath": "./plugins"})

        assert service.plugin_names == ["serverless-python-requirements"]

    def test_function_order_preserved(self):
        service = Service(functions={"b": {}, "a": {}, "c": {}})

        assert service.get_all_functions() == ["b", "a", "c"]
