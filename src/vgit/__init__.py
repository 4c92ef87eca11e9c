"""Trunk-aware git shortcuts.

Features:
- Resolve the trunk branch (master or main) from the origin remote
- Update the local trunk without checking it out
- Pull the latest trunk into the current branch
- Clean up remote-tracking branches and tags, optionally local branches
- Check out a branch, merging in the trunk or creating it off the trunk
"""

__version__ = "0.1.0"
