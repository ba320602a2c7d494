"""
Engine do Atlas DataLake.

    - planner → dependências derivadas dos data objects e ordem topológica determinística
    - engine  → passadas init/exec sobre o DAG, propagação de SubFeeds, fail-fast
"""

from .engine import Engine, RunResult
from .planner import CycleDetectedError, action_dependencies, plan_execution

__all__ = ["Engine", "RunResult", "CycleDetectedError", "action_dependencies", "plan_execution"]
