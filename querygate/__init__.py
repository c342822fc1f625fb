"""
QueryGate - natural language to guarded, read-only SQL.

Stages:
- adapters:     per-backend introspection and execution, pooled per database
- schema:       relation cards, their TTL cache and relevance selection
- generator:    phrase + cards -> candidate SELECT (LLM or mock)
- guards:       static safety checks on every generated statement
- executor:     timeout-bounded execution and response shaping
- orchestrator: the pipeline tying the stages together
"""

__version__ = "1.0.0"
