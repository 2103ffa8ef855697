"""
Domain abstractions for the deferred worker.
"""
