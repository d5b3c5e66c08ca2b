"""
Adapters — the project-model and prediction collaborators.

The core never reads build scripts itself; adapters turn a unit
identity into an evaluated unit and a prediction set.
"""
