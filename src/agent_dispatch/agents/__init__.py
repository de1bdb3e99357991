"""
Agent side of the pool.

- prompt_rules.py: declarative prompt-detection / auto-response table
- process.py: asyncio subprocess adapter
- supervisor.py: drives one agent program session at a time
- worker.py: branch -> agent -> commit pipeline for a single task
"""
