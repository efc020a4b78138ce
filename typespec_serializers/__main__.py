# File: typespec_serializers/__main__.py
"""
TypeSpec Serializers - Module entry point.

Allows running the generator directly via::

    python -m typespec_serializers generate --force

This module simply delegates to the CLI entry point defined in
``typespec_serializers.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from typespec_serializers.cli import cli_main

    cli_main()


if __name__ == "__main__":
    main()
