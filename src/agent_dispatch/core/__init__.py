"""
Core plumbing shared by every component.

- ports.py: Protocols the scheduler, workers and supervisors depend on
- errors.py: exception taxonomy
- events.py: event names, progress records, broadcast event sink
- state.py: AppState holder built by the composition root
"""
