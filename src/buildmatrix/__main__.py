"""Command line entry point: python -m buildmatrix."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .errors import ConfigurationError
from .hcl import DEFAULT_CONFIG, load_matrix
from .project import Outputs

logger = logging.getLogger(__name__)

_OUTPUTS = tuple(Outputs.model_fields)


def _summary(kind: str, artifact) -> str:
    if kind == "packages":
        return f"package {artifact.name}-{artifact.version} -> {artifact.out_path}"
    if kind == "dev_shells":
        return f"devshell {artifact.name} [{', '.join(artifact.package_names)}]"
    return f"image {artifact.reference} cmd={list(artifact.cmd)}"


def cmd_show(args, outputs: Outputs) -> None:
    for kind in args.outputs:
        print(kind)
        for platform, artifact in getattr(outputs, kind).items():
            print(f"  {platform}: {_summary(kind, artifact)}")


def cmd_eval(args, outputs: Outputs) -> None:
    data = outputs.model_dump(mode="json", include=set(args.outputs))
    if args.platform:
        data = {kind: {args.platform: value[args.platform]} for kind, value in data.items()}
    json.dump(data, sys.stdout, indent=2, sort_keys=True)
    print()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="buildmatrix", description=__doc__)
    parser.add_argument("-v", "--verbose", action="count", default=0)
    sub = parser.add_subparsers(dest="command", required=True)

    for name, func, help_text in (
        ("show", cmd_show, "summarize every output per platform"),
        ("eval", cmd_eval, "print the evaluated outputs as JSON"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("config", nargs="?", default=DEFAULT_CONFIG)
        p.add_argument(
            "-o",
            "--output",
            dest="outputs",
            action="append",
            choices=_OUTPUTS,
            help="restrict to one output (repeatable)",
        )
        p.set_defaults(func=func)

    sub.choices["eval"].add_argument("-p", "--platform", help="restrict to one platform")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.outputs = args.outputs or list(_OUTPUTS)

    try:
        matrix = load_matrix(args.config)
        if getattr(args, "platform", None) and args.platform not in matrix.platforms:
            raise ConfigurationError(f"Platform '{args.platform}' is not in the platform set")
        outputs = matrix.evaluate()
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    args.func(args, outputs)
    return 0


if __name__ == "__main__":
    sys.exit(main())
