"""
Coordination of the search procedure
====================================

Master side search loop and slave side evaluation of trials.
"""
