"""Core registry, job model, external tools, and conversion pipeline.

WHY: The core package holds everything that does not depend on a chat
platform or on HTTP: the slug registry shared by the pipeline and the
download server, the stage machine that turns a document into a MOBI
file, and the wrappers around the external tools it calls.

HOW: registry.py owns the slug map and its lock, jobs.py the stage enum
and per-job state, tools.py the subprocess calls, pipeline.py the
orchestration, errors.py the exception types.

RULES:
- Nothing in core imports slack_bolt or fastapi
- The registry is the only state shared between threads
"""
