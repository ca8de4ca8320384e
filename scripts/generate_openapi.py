#!/usr/bin/env python3
"""Write the Plura OpenAPI schema, security schemes included, to JSON.

Usage:
    python scripts/generate_openapi.py
    python scripts/generate_openapi.py -o docs/openapi.json
    python scripts/generate_openapi.py --check docs/openapi.json
"""

import argparse
import json
import sys
from collections import Counter
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from plura.main import create_openapi_schema  # noqa: E402


def render(schema: dict) -> str:
    return json.dumps(schema, indent=2, ensure_ascii=False, sort_keys=True) + "\n"


def summarize(schema: dict) -> None:
    """Print operation counts per tag and the declared auth schemes."""
    tags = Counter(
        tag
        for path_item in schema.get("paths", {}).values()
        for operation in path_item.values()
        for tag in operation.get("tags", ["untagged"])
    )
    for tag, count in sorted(tags.items()):
        print(f"  {tag:<16} {count}")
    schemes = schema.get("components", {}).get("securitySchemes", {})
    print(f"  security: {', '.join(sorted(schemes)) or 'none'}")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("-o", "--output", default="openapi_schema.json")
    parser.add_argument(
        "--check",
        metavar="FILE",
        help="Exit 1 if FILE differs from the current schema instead of writing",
    )
    args = parser.parse_args()

    schema = create_openapi_schema()
    rendered = render(schema)
    summarize(schema)

    if args.check:
        current = Path(args.check)
        if not current.exists() or current.read_text(encoding="utf-8") != rendered:
            print(f"{current} is out of date; regenerate it with -o {current}")
            return 1
        print(f"{current} is up to date")
        return 0

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    print(f"Wrote {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
