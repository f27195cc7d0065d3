"""Build task modules live here.

Each module groups the leaf tasks of one part of the site (`lib.py`,
`html.py`, ...) and decorates them with `@orchestrator.task(name=...)`.
Composite tasks are wired in the CLI, since they depend on build flags.

Do not implement logic here unless it's shared helpers; keep tasks modular per file.
"""
