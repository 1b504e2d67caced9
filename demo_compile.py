"""
Demo: Analyze and compile the example fragment set, then output the query.
"""

import logging

from qslice.analyzer import analyze_slices
from qslice.backends.edn import query_to_edn, save_edn_file
from qslice.compiler import compile_query
from qslice.examples import build_example_artist_or_slice, build_example_track_slices
from qslice.serialization import fragment_to_yaml
from qslice.terms import sym


def print_report(report):
    """Pretty-print a SliceReport."""
    print()
    print("=" * 70)
    print("SLICE ANALYSIS REPORT")
    print("=" * 70)
    print()

    print("📊 BASIC METRICS")
    print(f"  Total Slices:          {report.total_slices}")
    print(f"  Total Clauses:         {report.total_clauses}")
    print(f"  Total Parameters:      {report.total_parameters}")
    print(f"  Locked Slices:         {report.locked_slices}")
    print()

    print("🔗 PROVIDE / REQUIRE")
    for name, providers in sorted(report.provided_by.items()):
        print(f"    {name}: provided by {', '.join(providers)}")
    print(f"  Unsatisfied:           {report.unsatisfied if report.unsatisfied else 'None'}")
    print(f"  Unbound must-let:      {report.unbound_must_let if report.unbound_must_let else 'None'}")
    print(f"  Unused provides:       {sorted(report.unused_provides) if report.unused_provides else 'None'}")
    print()

    print("🔒 PRIVATE VARIABLES")
    for label, owned in report.owned_vars.items():
        print(f"    {label}: {owned if owned else '-'}")
    if report.shared_private_names:
        print(f"  Shared names (renamed at compile): {sorted(report.shared_private_names)}")
    print()

    print("📐 CLAUSE COMPLEXITY")
    print(f"  Max Clause Depth:      {report.max_clause_depth}")
    print(f"  Avg Clause Depth:      {report.avg_clause_depth:.2f}")
    print(f"  Total Term Nodes:      {report.total_term_nodes}")
    print()

    if report.warnings:
        print("⚠️  WARNINGS")
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    else:
        print("✨ NO WARNINGS - Slices look clean!")
    print()


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    # Build example fragments
    slices = build_example_track_slices(artist_name="John Lennon", years=[1970, 1971])

    # Analyze them
    report = analyze_slices(slices)
    print_report(report)

    # Compile and render
    compiled = compile_query([sym("?title")], slices)
    print("🧩 COMPILED QUERY")
    print(f"  {query_to_edn(compiled)}")
    print(f"  args: {compiled.args}")
    print()

    or_slice = build_example_artist_or_slice("John Lennon")
    print("🔀 DISJUNCTION")
    print(fragment_to_yaml(or_slice))

    save_edn_file(compiled, "example_query_output.edn")
    print("✅ Query exported to example_query_output.edn")
