"""
Write the portal's OpenAPI document.

The schema is built from the routes alone; no ERP connection is made and no
BC_* variables are needed.

Usage:
    python scripts/generate_openapi.py                     # Print to stdout
    python scripts/generate_openapi.py -o openapi.json     # Save to file
    python scripts/generate_openapi.py --summary           # Paths per tag
"""

import argparse
import json
import sys
from collections import Counter
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.server import create_app


def build_openapi() -> dict:
    return create_app().openapi()


def summarize(document: dict) -> Counter:
    """Operation count per tag (Health, Resources, Leave, Dashboard)."""
    tags = Counter()
    for operations in document.get("paths", {}).values():
        for operation in operations.values():
            for tag in operation.get("tags", ["untagged"]):
                tags[tag] += 1
    return tags


def main():
    parser = argparse.ArgumentParser(description="Generate the portal OpenAPI document")
    parser.add_argument("--output", "-o", help="Output file path (default: stdout)")
    parser.add_argument("--summary", action="store_true", help="Print operations per tag instead of the document")
    args = parser.parse_args()

    document = build_openapi()

    if args.summary:
        print(f"{document['info']['title']} {document['info']['version']}")
        for tag, count in sorted(summarize(document).items()):
            print(f"  {tag:<12} {count} operation(s)")
        return

    text = json.dumps(document, indent=2)
    if args.output:
        Path(args.output).write_text(text)
        print(f"OpenAPI document written to: {args.output}", file=sys.stderr)
    else:
        print(text)


if __name__ == "__main__":
    main()
