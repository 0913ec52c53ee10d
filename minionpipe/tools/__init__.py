"""
Stage tools run as child processes by the StageRunner.

Each module exposes a plain function for the text predicate it implements and a
``main`` entry point used through ``python -m minionpipe.tools.<name>``.
"""
