"""
Executors
=========

Backends running one trial and returning a handle on its objective.
"""
