"""
homeagent.core - Tool Orchestration and Resilience Core

This package contains the command-execution machinery:
- Trace log for per-command observability
- Tool registry unifying local and external tool providers
- Planner/validator collaborator interfaces
- Command engine with bounded retry and optional self-validation
"""

__all__: list[str] = []
