"""
skill-builder: versioned skill artifact storage and install resolution.

Skill artifacts are stored in a local repository or an S3-compatible
remote repository, each carrying a ``skills_index.json`` document, and are
installed by resolving them from the local repository, the remote
repository or GitHub releases, in that order.
"""

__version__ = "0.1.0"
