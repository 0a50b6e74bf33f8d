"""
Input/output of settings and package configuration
===================================================

Settings registry serialized as flag lists and configuration of the package defaults.
"""
