"""
Headwatch - follow the checked-out git branch of a project.

Resolves a repository's HEAD to a readable branch name straight from the
.git directory, watches it for switches, and splices the result into a
window title.
"""

__version__ = "1.0.0"
