"""npm-snapshot core package.

Captures point-in-time snapshots of a JavaScript project's lockfile,
stores compressed copies, and scores the dependency set for common
supply-chain risks.
"""

__all__ = [
    "core",
]
