"""
Core wiring.

- ports.py: Protocols for the engine's collaborators
- state.py: AppState, the explicit handle passed to every command
- notify.py: LogNotifier
"""
