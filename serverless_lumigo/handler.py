"""
Handler reference parsing.

A handler is written as <modulePath>.<exportedName>. The module path may
contain directory separators and dots of its own, so only the last dot
separates the module from the exported function name:

    foo/foo/bar.handler   -> foo/foo/bar, handler
    foo.bar/zoo.handler   -> foo.bar/zoo, handler
    hello.world.handler   -> hello.world, handler
"""

from .error_handling import MalformedHandlerError
from .models import HandlerReference

PATH_SEPARATORS = ("/", "\\")


def parse_handler(raw: str) -> HandlerReference:
    """
    Split a handler string into its module path and function name.

    Args:
        raw: Handler string as declared on the function

    Returns:
        HandlerReference: The module path and exported function name

    Raises:
        MalformedHandlerError: If the handler has no dot, or either side of
            the last dot is empty
    """
    if not isinstance(raw, str):
        raise MalformedHandlerError(f"serverless-lumigo: handler must be a string, got [{raw!r}]")

    index = raw.rfind(".")
    if index == -1:
        raise MalformedHandlerError(
            f"serverless-lumigo: malformed handler [{raw}], expected <module>.<function>"
        )

    module_path = raw[:index]
    func_name = raw[index + 1:]

    # "functions/.handler" or "handler." name nothing usable
    if not func_name or not module_path or module_path.endswith(PATH_SEPARATORS):
        raise MalformedHandlerError(
            f"serverless-lumigo: malformed handler [{raw}], expected <module>.<function>"
        )
    if any(sep in func_name for sep in PATH_SEPARATORS):
        raise MalformedHandlerError(
            f"serverless-lumigo: malformed handler [{raw}], function name contains a path separator"
        )

    return HandlerReference(module_path=module_path, func_name=func_name)


def to_python_module(module_path: str) -> str:
    """
    Translate a module path to Python import syntax.

    Every path separator becomes a dot, e.g. foo/foo/bar -> foo.foo.bar.
    """
    for sep in PATH_SEPARATORS:
        module_path = module_path.replace(sep, ".")
    return module_path
