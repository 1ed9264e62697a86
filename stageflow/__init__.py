"""
stageflow: a three-stage demo pipeline (Init, Build, Test) with packaging.

The pipeline is declared as a handful of stages with `when` conditions, a
timeout/retry policy and post actions. Prefect executes it; this package
supplies the stage bodies, the run parameters and the artifact contract.
"""

__version__ = "1.0.0"
__author__ = "stageflow Team"
