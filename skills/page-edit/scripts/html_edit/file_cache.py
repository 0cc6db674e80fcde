"""Latest serialized markup per source file path."""

from typing import Dict, Iterator, Optional, Tuple


class FileCache:
    """
    Read-through/write-back map of path -> serialized text.

    Once a path has an entry, every later read in the session comes from
    here, so an earlier apply pass is never undone by re-fetching the
    pristine original. set() is the only mutator and always fully replaces.
    """

    def __init__(self):
        self._files: Dict[str, str] = {}

    def get(self, path: str) -> Optional[str]:
        return self._files.get(path)

    def set(self, path: str, text: str) -> None:
        self._files[path] = text

    def __contains__(self, path: str) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._files.items()))
