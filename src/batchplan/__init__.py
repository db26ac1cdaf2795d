# src/batchplan/__init__.py
"""
batchplan: compile logical transform pipelines into dependent batch jobs.

The planner turns NodePaths into physical map-only or map+shuffle+reduce job
definitions, multiplexes many sinks into one job, and drives the resulting job
graph to completion with a polling state machine.
"""

__version__ = "0.3.0"
