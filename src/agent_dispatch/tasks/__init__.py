"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskPriority, TaskResult, ...)
- task_scheduler.py: in-memory registries and priority assignment onto the worker pool
- task_api.py: small high-level helpers used by connectors
"""
