"""
Example: Dragging a splitter with edit variables

A horizontal splitter divides a 400 wide window into two panes, each at
least 50 wide. The splitter position is an edit variable, so values can be
suggested for it as the mouse moves; the panes never shrink below their
minimum width no matter how far the mouse goes.
"""

import logging

import strata


def main():
    logging.basicConfig(level=logging.INFO)

    print()
    print("=" * 70)
    print("strata Example: Dragging a Splitter - Python")
    print("=" * 70)
    print()

    split = strata.Variable('split')
    left_width = strata.Variable('left_width')
    right_width = strata.Variable('right_width')

    solver = strata.Solver()
    solver.add_constraint(left_width == split)
    solver.add_constraint(left_width + right_width == 400)
    solver.add_constraint(left_width >= 50)
    solver.add_constraint(right_width >= 50)

    solver.add_edit_variable(split, strata.STRONG)

    print(f"{'mouse':>8} {'split':>8} {'left':>8} {'right':>8}")
    for mouse in (200, 120, 20, -80, 300, 390, 1000):
        solver.suggest_value(split, mouse)
        solver.update_variables()
        print(f"{mouse:>8} {split.value:>8.1f} {left_width.value:>8.1f} "
              f"{right_width.value:>8.1f}")

    solver.remove_edit_variable(split)
    print()
    print("Solver state after the drag:")
    solver.dump()
    print("=" * 70)
    print()


if __name__ == "__main__":
    main()
