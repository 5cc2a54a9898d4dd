"""Command-line front end: print the truth table and normal forms of a formula."""

import argparse
import logging
import sys
from typing import List, Optional

from propositional import TruthTableError
from truth_table import Settings, build, cnf, dnf, mark_frame, normal_form_frame


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="truthtable",
        description="Build the truth table, CNF and DNF of a propositional formula.",
        epilog="Connectives: ¬ (or ~) ∧ ∨ → ↔ ⊕ ↑ ↓. Variables: single letters.",
    )
    parser.add_argument("formula", help='Formula to evaluate, e.g. "P⊕Q→P∨Q∧R"')
    parser.add_argument("--tsv", action="store_true", help="Print the table as tab-separated text.")
    parser.add_argument("--cnf", action="store_true", help="Print the conjunctive normal form.")
    parser.add_argument("--dnf", action="store_true", help="Print the disjunctive normal form.")
    parser.add_argument(
        "--verify",
        action="store_true",
        help="With --cnf/--dnf, also print the clause-by-clause verification table.",
    )
    parser.add_argument("--steps", action="store_true", help="Explain the result row by row.")
    parser.add_argument(
        "--markers",
        nargs=2,
        metavar=("TRUE", "FALSE"),
        help="Glyphs for true and false in text output (default: T F).",
    )
    parser.add_argument("--max-variables", type=int, help="Refuse formulas with more variables.")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject malformed fragments instead of treating them as false.",
    )
    parser.add_argument("--html", metavar="FILE", help="Write an interactive sub-expression graph.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function of the ``truthtable`` command."""
    args = _parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        settings = Settings.from_env()
        table = build(
            args.formula,
            max_variables=args.max_variables,
            strict=args.strict or None,
            settings=settings,
        )
    except TruthTableError as e:
        print(f"truthtable: {e}", file=sys.stderr)
        return 2

    true_marker, false_marker = args.markers or (settings.true_marker, settings.false_marker)
    logging.info(
        "Evaluated %d sub-expressions over %d rows", len(table.subexpressions), len(table.rows)
    )

    if args.tsv:
        print(table.to_tsv(true_marker, false_marker), end="")
    else:
        print(mark_frame(table.to_dataframe(), true_marker, false_marker).to_string(index=False))

    for wanted, derive in ((args.cnf, cnf), (args.dnf, dnf)):
        if not wanted:
            continue
        form = derive(table)
        print()
        print(f"{form.kind}: {form.formula}")
        if args.verify and form.is_valid:
            frame = normal_form_frame(table, form)
            print(mark_frame(frame, true_marker, false_marker).to_string(index=False))

    if args.steps:
        print()
        for line in table.steps(true_marker, false_marker):
            print(line)

    if args.html:
        from logic_graph import build_subexpression_graph, export_to_html

        path = export_to_html(build_subexpression_graph(args.formula, table), args.html)
        print(f"Interactive graph saved to {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
