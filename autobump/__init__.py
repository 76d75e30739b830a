"""Autobump - release automation for npm package repositories.

Bumps a package version, commits it on an isolated branch, pushes it and
opens a pull request, either interactively or from a GitHub Actions step.
"""

__version__ = "0.1.0"
