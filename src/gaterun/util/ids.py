from __future__ import annotations

"""Check name validation.

CONTRACT
- Inputs: Check names
- Outputs (required):
  - validate_check_name() returns validated name or raises
- Invariants:
  - Check names match `[A-Za-z0-9][A-Za-z0-9_.-]{0,31}`
- Failure:
  - Raises ValueError on invalid names
"""

import re

_CHECK_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,31}$")


def validate_check_name(name: str) -> str:
    if not _CHECK_NAME_RE.fullmatch(name):
        raise ValueError(
            f"Invalid check name {name!r}. Use 1-32 chars: letters/digits, plus '_.-'. Must "
            "start with a letter or digit."
        )
    return name


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Validate check names")
    parser.add_argument("name", help="Check name to validate")
    args = parser.parse_args()

    try:
        print(validate_check_name(args.name))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
