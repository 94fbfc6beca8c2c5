"""Archive support for packing and unpacking directory trees.

Zip and tar containers are handled by the standard library; this module
only maps tree operations onto them.
"""

from fstree.archive.codec import ArchiveCodec, ArchiveEntry, EntrySink, codec_for, is_archive
from fstree.archive.transfer import PackSource, pack, pack_all, unpack

__all__ = [
    "ArchiveCodec",
    "ArchiveEntry",
    "EntrySink",
    "PackSource",
    "codec_for",
    "is_archive",
    "pack",
    "pack_all",
    "unpack",
]
