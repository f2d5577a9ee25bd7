"""
Pipeline Coordination Engine

Drives an untrusted code-generating oracle through a multi-phase execution
plan: dependency-ordered scheduling, scope enforcement, a cross-phase symbol
catalog, and a bounded build repair loop.
"""
