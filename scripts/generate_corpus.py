from __future__ import annotations

import argparse
from pathlib import Path

from scriptmap.testing import generate_include_tree


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="generate_corpus")
    ap.add_argument("--seed", type=int, default=1)
    ap.add_argument("--count", type=int, default=200)
    ap.add_argument("--out", default="tests/fixtures/generated_corpus")
    args = ap.parse_args(argv)

    out_dir = Path(args.out).resolve() / f"seed_{args.seed}_count_{args.count}"
    out_dir.mkdir(parents=True, exist_ok=True)

    files = generate_include_tree(seed=args.seed, count=args.count)
    for rel, src in files:
        p = out_dir / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(src, encoding="utf-8")

    # The root document; flatten it with `scriptmap flatten <root> --map`.
    print(str(out_dir / files[0][0]))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
