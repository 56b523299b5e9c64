#!/usr/bin/env python3
"""Replay the question order a candidate saw for a given seed.

RUN:  python scripts/replay_question_order.py 0x1f q0 q1 q2 q3 q4

Question ids (or any labels) must be given in stored order, i.e. sorted by
question id.  Prints the order the quiz endpoint presented them in.  Needs
no server, database or ledger: the ordering depends only on the seed.
"""

from __future__ import annotations

import sys

from vcanchor.services.assessment_engine import SEED_RE
from vcanchor.services.seeded_shuffle import shuffle


def main() -> None:
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)

    seed, items = sys.argv[1], sys.argv[2:]
    if not SEED_RE.match(seed):
        print(f"Not a hex seed: {seed!r}")
        sys.exit(1)

    for position, item in enumerate(shuffle(items, seed), start=1):
        print(f"{position:>3}. {item}")


if __name__ == "__main__":
    main()
