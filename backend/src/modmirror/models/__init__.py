from modmirror.models.mod import Mod, ModFile
from modmirror.models.path_entry import PathEntry

__all__ = [
    "Mod",
    "ModFile",
    "PathEntry",
]
