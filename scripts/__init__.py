"""
Entry point scripts for the Strategy Optimizer.

Scripts:
- run_optimization.py: Run a phased parameter search and export the results
"""
