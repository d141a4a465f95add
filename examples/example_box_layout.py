"""
Example: Laying out two boxes side by side with strata

This example demonstrates how to build constraints from variables and
solve them incrementally.

Problem:
    window:  0 <= left,  right == 600           (required)
    boxes:   a.right + 10 <= b.left              (required)
             a.width == b.width                  (strong)
             a.width == 200                      (weak)
"""

import strata


def main():
    print()
    print("=" * 70)
    print("strata Example: Box Layout - Python")
    print("=" * 70)
    print()

    a_left = strata.Variable('a_left')
    a_width = strata.Variable('a_width')
    b_left = strata.Variable('b_left')
    b_width = strata.Variable('b_width')

    solver = strata.Solver()

    # Step 1: Required structure
    solver.add_constraint(a_left == 0)
    solver.add_constraint(b_left + b_width == 600)
    solver.add_constraint(a_left + a_width + 10 <= b_left)
    for width in (a_width, b_width):
        solver.add_constraint(width >= 0)

    # Step 2: Preferences
    solver.add_constraint((a_width == b_width) | 'strong')
    preferred = (a_width == 200) | 'weak'
    solver.add_constraint(preferred)

    # Step 3: Read the solution
    solver.update_variables()
    print("With a weak preference for a 200 wide first box:")
    print(f"  a = [{a_left.value:.1f}, {a_left.value + a_width.value:.1f}]")
    print(f"  b = [{b_left.value:.1f}, {b_left.value + b_width.value:.1f}]")
    print()

    # Step 4: Drop the preference and solve again incrementally
    solver.remove_constraint(preferred)
    solver.add_constraint((a_width + 10 + b_width == 600) | 'medium')
    solver.update_variables()
    print("Boxes sharing the whole window:")
    print(f"  a = [{a_left.value:.1f}, {a_left.value + a_width.value:.1f}]")
    print(f"  b = [{b_left.value:.1f}, {b_left.value + b_width.value:.1f}]")
    print()

    # Step 5: A conflicting required constraint is rejected
    try:
        solver.add_constraint(a_width >= 1000)
    except strata.UnsatisfiableConstraint as e:
        print(f"Rejected: {e}")
    print()
    print("=" * 70)
    print()


if __name__ == "__main__":
    main()
