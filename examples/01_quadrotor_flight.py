#!/usr/bin/env python3
"""
Example 01: Quadrotor Flight

Demonstrates the rbtrajopt workflow:
- Setting up costs and constraints for a quadrotor
- Solving with the augmented-Lagrangian iLQR solver
- Tracking the result under a wind disturbance

Outputs saved to: examples/outputs/
"""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

import rbtrajopt as rt
from rbtrajopt.visualization import plot_controls, plot_states, plot_tracking, plot_trajectory_3d

# Output directory
OUTPUT_DIR = Path(__file__).parent / "outputs"


def flight_example():
    """Fly 20 m along y with thrust limits and an exact terminal goal."""
    print("=" * 60)
    print("Constrained Quadrotor Flight")
    print("=" * 60)

    quad = rt.create_quadrotor()
    u_hover = quad.trim_control()
    print(f"System: {quad}")
    print(f"Hover command: {u_hover[0]:.4f}")

    n_knots, tf = 101, 5.0
    x0 = rt.pack_state(position=[0.0, -10.0, 1.0])
    xf = rt.pack_state(position=[0.0, 10.0, 1.0])

    stage = rt.QuadraticCost(1e-2 * np.eye(12), 1e-2 * np.eye(4), xf, u_ref=u_hover)
    terminal = rt.QuadraticCost(100.0 * np.eye(12), None, xf, terminal=True)
    costs = rt.make_cost_sequence(stage, terminal, n_knots)

    u_min, u_max = np.zeros(4), np.full(4, 12.0)
    constraints = rt.ConstraintSet(n_knots)
    constraints.add(rt.BoundConstraint(13, 4, u_min=u_min, u_max=u_max))
    constraints.add(rt.GoalConstraint(xf), indices=-1)

    result = rt.solve(quad, costs, constraints, x0, xf, tf, u_hover)
    print(result.summary())
    print(f"Terminal error: {result.terminal_error:.2e}")

    # --- Plots ---

    fig1, _ = plot_trajectory_3d(result.trajectory, title="Quadrotor Flight Path")
    fig1.savefig(OUTPUT_DIR / "01a_flight_path.png", dpi=150)
    print("Saved: 01a_flight_path.png")

    fig2, _ = plot_states(result.trajectory, title="Quadrotor States")
    fig2.savefig(OUTPUT_DIR / "01a_flight_states.png", dpi=150)
    print("Saved: 01a_flight_states.png")

    fig3, _ = plot_controls(result.trajectory, quad.control_names, title="Rotor Commands", bounds=(u_min, u_max))
    fig3.savefig(OUTPUT_DIR / "01a_flight_controls.png", dpi=150)
    print("Saved: 01a_flight_controls.png")

    plt.close("all")
    return quad, result


def tracking_example(quad, result):
    """Replay the optimized flight in a crosswind, with and without feedback."""
    print("\n" + "=" * 60)
    print("Tracking Under Disturbance")
    print("=" * 60)

    windy = rt.DisturbedModel(quad, force=[0.2, 0.0, 0.0])
    print(f"Plant: {windy}")

    closed = rt.track(windy, result.trajectory, result.gains)
    no_feedback = rt.Gains(np.zeros_like(result.gains.K), np.zeros_like(result.gains.d))
    open_loop = rt.track(windy, result.trajectory, no_feedback)

    goal = result.trajectory.final_state[:3]
    print(f"Closed-loop final error: {np.linalg.norm(closed.final_state[:3] - goal):.4f} m")
    print(f"Open-loop final error:   {np.linalg.norm(open_loop.final_state[:3] - goal):.4f} m")

    # --- Plots ---

    fig1, _ = plot_tracking(result.trajectory, closed, open_loop, title="Crosswind Tracking")
    fig1.savefig(OUTPUT_DIR / "01b_tracking.png", dpi=150)
    print("Saved: 01b_tracking.png")

    plt.close("all")


def main():
    print("#" * 60)
    print("# rbtrajopt Example 01: Quadrotor Flight")
    print("#" * 60)

    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    # Create output directory
    OUTPUT_DIR.mkdir(exist_ok=True)
    print(f"\nOutputs: {OUTPUT_DIR.absolute()}\n")

    quad, result = flight_example()
    tracking_example(quad, result)

    print("\n" + "#" * 60)
    print("# Done")
    print("#" * 60)


if __name__ == "__main__":
    main()
