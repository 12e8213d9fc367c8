"""
Command-line driver for running the plugin outside the Serverless Framework.

Reads a serverless.json service definition, wraps or cleans up its functions,
and writes the rewritten definition back out.
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from .error_handling import LumigoPluginError
from .plugin import LumigoPlugin
from .service import Service


def load_service(path: str) -> Service:
    with open(path, "r", encoding="utf8") as f:
        doc = json.load(f)
    return Service.from_dict(doc, service_path=os.path.dirname(os.path.abspath(path)))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='serverless-lumigo',
        description='Wrap serverless function handlers with the Lumigo tracer'
    )
    parser.add_argument('--config', default='serverless.json',
                        help='Path to the service definition (default: serverless.json)')
    parser.add_argument('--verbose', action='store_true',
                        help='Print verbose output (same as setting SLS_DEBUG)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    wrap_parser = subparsers.add_parser('wrap', help='Generate wrappers and rewrite handlers')
    wrap_parser.add_argument('--function', dest='function',
                             help='Only wrap this function (as for a single-function deploy)')
    wrap_parser.add_argument('--output',
                             help='Write the rewritten service definition here (default: stdout)')

    subparsers.add_parser('cleanup', help='Remove generated wrappers and the installed tracer')

    args = parser.parse_args(argv)

    try:
        service = load_service(args.config)
    except (OSError, ValueError) as e:
        print(f"serverless-lumigo: unable to load {args.config}: {e}", file=sys.stderr)
        return 1

    plugin = LumigoPlugin(
        service,
        options={'function': getattr(args, 'function', None)},
        cli_log=lambda line: print(line, file=sys.stderr),
        verbose=True if args.verbose else None,
    )

    try:
        if args.command == 'wrap':
            if args.function:
                plugin.on_single_deploy()
            else:
                plugin.on_prepare()
        else:
            plugin.on_artifacts_created()
    except LumigoPluginError as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.command == 'wrap':
        output = json.dumps(service.to_dict(), indent=2)
        if args.output:
            with open(args.output, "w", encoding="utf8") as f:
                f.write(output + "\n")
        else:
            print(output)

    return 0


if __name__ == '__main__':
    sys.exit(main())
