"""
ghexport - Incremental GitHub repository exporter.

A CLI tool that exports repository datasets (contributors, commits, issues,
pull requests, releases, branches) to Markdown and JSON files, and remembers
what it exported so later runs only fetch what changed.
"""

__version__ = "0.1.0"
__app_name__ = "ghexport"
