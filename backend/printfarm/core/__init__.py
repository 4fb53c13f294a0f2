"""
Core package for shared utilities.

Configuration, structured logging and the error taxonomy shared by the
entity store, the workflow engine and the HTTP layer.
"""
