"""
Canvas App Decomposer (canvaspkg)

Splits a packaged canvas app into a source-control friendly directory tree,
and puts it back together again.

ARCHITECTURAL GUARANTEE:
------------------------
Decomposition is lossless or it does not happen.

    - Every control file is reserialized and byte-compared before it is split
    - Volatile values are moved into a side catalog, never dropped
    - Child ordering is recorded explicitly, never taken from the file system

The composer consumes the decomposed tree unchanged and reproduces the
original control files byte-for-byte.
"""

__version__ = "0.1.0"
