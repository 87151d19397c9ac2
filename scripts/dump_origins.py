from __future__ import annotations

import sys

from scriptmap import flatten_file


def main() -> None:
    res = flatten_file(sys.argv[1])
    if res.origins is None:
        print("anonymous document: no origins")
        return
    print(f"spans: {len(res.origins)}")
    for depth, span in res.origins.spans():
        size = span.size() if not span.is_open else "?"
        print(f"{'  ' * depth}{span.format()} ({size} lines)")


if __name__ == "__main__":
    main()
