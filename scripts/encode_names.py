"""
Print Daitch-Mokotoff Soundex codes for names given on the command line or in a file.
"""

import sys
import argparse
from pathlib import Path

from dmsoundex.daitch_mokotoff import ConfigurationError, DaitchMokotoffConfig, DaitchMokotoffSoundex


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Encode names with Daitch-Mokotoff Soundex.")
    parser.add_argument("names", nargs="*", help="Names to encode.")
    parser.add_argument("--names_path", type=str, default=None, help="Path to a UTF-8 file with one name per line.")
    parser.add_argument("--rules", type=str, default=None, help="Path to an alternative rule file.")
    parser.add_argument("--primary", action="store_true", help="Print only the primary code of each name.")
    return parser


def read_names(args: argparse.Namespace) -> list[str]:
    names = list(args.names)
    if args.names_path:
        lines = Path(args.names_path).read_text(encoding="utf-8").splitlines()
        names.extend(line for line in lines if line.strip())
    return names


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = DaitchMokotoffConfig.create_default()
    if args.rules:
        config = config.with_rules_path(args.rules)

    try:
        encoder = DaitchMokotoffSoundex(config)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    for name in read_names(args):
        codes = encoder.encode(name) if args.primary else encoder.full_encode(name)
        print(f"{name}\t{codes}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
