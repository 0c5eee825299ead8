#!/usr/bin/env python3
"""Generate an ed25519 SSH keypair for use with keyreg."""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from keyreg.keys import DEFAULT_GENERATED_KEY, generate_ssh_keypair


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate an ed25519 SSH keypair"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=DEFAULT_GENERATED_KEY,
        help=f"Output path for private key (default: {DEFAULT_GENERATED_KEY})"
    )
    parser.add_argument(
        "-C", "--comment",
        help="Key comment (default: user@hostname)"
    )
    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite existing key"
    )

    args = parser.parse_args(argv)

    if args.output.exists() and not args.force:
        print(f"Error: Key already exists: {args.output}")
        print("Use -f to overwrite")
        return 1

    pub_path = generate_ssh_keypair(args.output, args.comment)

    print("Generated SSH keypair:")
    print(f"  Private key: {args.output}")
    print(f"  Public key:  {pub_path}")
    print()
    print("Register it on a server with:")
    print(f"  keyreg user@host {pub_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
