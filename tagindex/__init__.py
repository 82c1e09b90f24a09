"""
tagindex - index audio file tags into SQLite.

Point it at directories; every audio file found is read with mutagen and its
title/artist/album/... tags are inserted into, or refreshed in, a `tags`
table keyed by file path.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

__all__ = ["__version__"]
