"""
Pipeline editor state engine.

Editable pipeline DAG model, structural edit reducer, layered layout,
pre-save validation and save/reconciliation against the pipeline backend.
"""

__version__ = "0.1.0"
