"""
Sampling of hyperparameter values
=================================

Samplers drawing values from declared distributions and the hyperparameters binding
them to mutable settings.
"""
