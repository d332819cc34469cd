"""scangate CLI entry point.

Usage:
    scangate --repository my-app --tag 1.2.3
    scangate --fail-threshold critical --ignore-list "CVE-2023-1234 CVE-2023-5678"
    REPOSITORY=my-app TAG=1.2.3 scangate

Exit codes: 0 when the gate passes, 1 on any failure, 130 when cancelled.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Any, Optional

from forge_scangate import __version__, create_plugin
from forge_scangate.config import load_config_file
from forge_scangate.context import ExecutionContext
from forge_scangate.exceptions import ConfigError
from forge_scangate.protocol import ResultStatus, ToolParam, ToolPlugin

# Map ToolParam.type strings to Python types for argparse
TYPE_MAP: dict[str, type] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "path": Path,
}

# Exit codes per status
_STATUS_EXIT_CODES: dict[ResultStatus, int] = {
    ResultStatus.SUCCESS: 0,
    ResultStatus.FAILURE: 1,
    ResultStatus.CANCELLED: 130,
}


def add_params_to_parser(
    parser: argparse.ArgumentParser, params: list[ToolParam]
) -> None:
    """Add ToolParam declarations to an argparse.ArgumentParser.

    Unset flags parse to None so they never mask environment or file values.
    """
    for param in params:
        flag = f"--{param.name}"
        kwargs: dict[str, Any] = {
            "help": param.description,
            "default": param.default,
        }

        if param.type == "bool":
            # Boolean params become --flag / --no-flag
            kwargs["action"] = argparse.BooleanOptionalAction
        else:
            kwargs["type"] = TYPE_MAP.get(param.type, str)
            kwargs["required"] = param.required
            if param.choices:
                kwargs["choices"] = param.choices
                kwargs["type"] = str.lower

        parser.add_argument(flag, **kwargs)


def build_parser(plugin: ToolPlugin) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=plugin.name, description=plugin.description)
    parser.add_argument("--version", "-V", action="version", version=f"{plugin.name} {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with option defaults (default: ~/.config/forge/scangate.yaml if present)",
    )
    add_params_to_parser(parser, plugin.get_params())
    return parser


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; stdout is reserved for the report."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _console_progress(fraction: float, message: str) -> None:
    """Print progress to stderr."""
    pct = int(fraction * 100)
    print(f"  [{pct:3d}%] {message}", file=sys.stderr, flush=True)


def run_plugin(plugin: ToolPlugin, args: dict[str, Any], ctx: ExecutionContext) -> int:
    """Run a plugin in-process and return an exit code.

    The report goes to stdout. Any non-success outcome prints exactly one
    cause line on stderr.
    """
    try:
        result = plugin.run(args, ctx)
    except KeyboardInterrupt:
        ctx.cancel_event.set()
        print("Cancelled.", file=sys.stderr)
        return _STATUS_EXIT_CODES[ResultStatus.CANCELLED]
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output = result.data.get("output") if result.data else None
    if output:
        print(output)

    if result.status is ResultStatus.SUCCESS:
        print(result.summary)
    else:
        print(result.summary, file=sys.stderr)

    return _STATUS_EXIT_CODES.get(result.status, 1)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    plugin = create_plugin()
    parser = build_parser(plugin)
    args = vars(parser.parse_args(argv))
    config_path = args.pop("config")

    configure_logging(bool(args.get("verbose")))

    try:
        file_values = load_config_file(config_path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    ctx = ExecutionContext(
        config=file_values,
        on_progress=_console_progress,
        cancel_event=threading.Event(),
    )
    sys.exit(run_plugin(plugin, args, ctx))


if __name__ == "__main__":
    main()
