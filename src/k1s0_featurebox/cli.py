"""featurebox 管理用 CLI

Examples:
  k1s0-featurebox enable new_dashboard
  k1s0-featurebox enable beta --conditions='{"environments": ["staging"]}'
  k1s0-featurebox disable beta
  k1s0-featurebox list
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import load_config
from .exceptions import FeatureBoxError
from .logger import new_logger
from .models import FlagRecord
from .service import FeatureBox


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k1s0-featurebox",
        description="Manage feature flags",
    )
    parser.add_argument("--config", type=Path, help="Base YAML config file")
    parser.add_argument("--env-config", type=Path, help="Environment override YAML file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    enable_parser = subparsers.add_parser("enable", help="Enable a feature with optional conditions")
    enable_parser.add_argument("feature", help="Feature name")
    enable_parser.add_argument("--conditions", help="Conditions as a JSON object")

    disable_parser = subparsers.add_parser("disable", help="Disable a feature")
    disable_parser.add_argument("feature", help="Feature name")

    subparsers.add_parser("list", help="List all features with their status")
    return parser


def cmd_enable(
    featurebox: FeatureBox, feature: str, conditions_json: str | None, out: TextIO, err: TextIO
) -> int:
    conditions: Any = {}
    if conditions_json is not None:
        try:
            conditions = json.loads(conditions_json)
        except ValueError:
            print("Invalid JSON format for conditions", file=err)
            return 1
        if not isinstance(conditions, dict):
            print("Conditions must be a JSON object", file=err)
            return 1

    if featurebox.enable(feature, conditions):
        print(f"Feature '{feature}' has been enabled successfully!", file=out)
        if conditions:
            print("Conditions: " + json.dumps(conditions, indent=4), file=out)
        return 0

    print(f"Failed to enable feature '{feature}'", file=err)
    return 1


def cmd_disable(featurebox: FeatureBox, feature: str, out: TextIO, err: TextIO) -> int:
    if featurebox.disable(feature):
        print(f"Feature '{feature}' has been disabled successfully!", file=out)
        return 0

    print(f"Failed to disable feature '{feature}'", file=err)
    return 1


def cmd_list(featurebox: FeatureBox, out: TextIO) -> int:
    features = featurebox.all()
    if not features:
        print("No features found.", file=out)
        return 0

    print("Feature List:", file=out)
    print(file=out)
    table = Table()
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Conditions", overflow="fold")
    table.add_column("Updated At", no_wrap=True)
    for feature in features:
        table.add_row(*(escape(cell) for cell in _row(feature)))
    Console(file=out).print(table)
    return 0


def _row(feature: FlagRecord) -> list[str]:
    status = "Enabled" if feature.enabled else "Disabled"
    conditions = json.dumps(feature.conditions.to_dict()) if feature.conditions else "None"
    updated_at = (
        feature.updated_at.strftime("%Y-%m-%d %H:%M:%S") if feature.updated_at else "N/A"
    )
    return [feature.name, status, conditions, updated_at]


def run(
    args: argparse.Namespace,
    featurebox: FeatureBox,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """解析済み引数に従ってコマンドを実行し、終了コードを返す。"""
    out = out or sys.stdout
    err = err or sys.stderr
    if args.command == "enable":
        return cmd_enable(featurebox, args.feature, args.conditions, out, err)
    if args.command == "disable":
        return cmd_disable(featurebox, args.feature, out, err)
    return cmd_list(featurebox, out)


def main(argv: Sequence[str] | None = None) -> int:
    args = create_parser().parse_args(argv)
    try:
        config = load_config(args.config, args.env_config)
        new_logger(
            level=config.log.level,
            format=config.log.format,
            environment=config.app.environment,
        )
        featurebox = FeatureBox.from_config(config)
    except FeatureBoxError as e:
        print(str(e), file=sys.stderr)
        return 1
    return run(args, featurebox)


if __name__ == "__main__":
    sys.exit(main())
