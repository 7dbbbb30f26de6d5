"""Quiz lifecycle engine.

The engine is storage-agnostic: every operation receives a ``QuizStore``
(see ``store.py``) and an explicit ``UserContext``. It provides:
  - an in-memory authoring stage and the commit protocol that makes it durable
  - positional reconciliation of edited questions against stored answers
  - the taking-session state machine and the grading engine
  - read models for reviewing stored results
"""
