"""
Deterministic calculation engine.

Pure Python math. Given validated form inputs and a pricing snapshot,
produce quantities, costs and a step-by-step explanation.
"""
