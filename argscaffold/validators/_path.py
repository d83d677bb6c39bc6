import pathlib
from typing import Any

from attrs import field

from argscaffold.utils import frozen, to_tuple_converter


def _extensions(value: Any) -> tuple[str, ...]:
    return tuple(e.lower().lstrip(".") for e in to_tuple_converter(value))


@frozen(kw_only=True)
class Path:
    """Checks a revived :class:`pathlib.Path` against the file system.

    .. code-block:: python

        class Copy:
            src: Annotated[Path, Arg(position=0, validator=validators.Path(exists=True, dir_okay=False))]
            dst: Annotated[Path, Arg(position=1, validator=validators.Path(dir_okay=False, file_okay=False))]

    ``file_okay=False, dir_okay=False`` means the path must not exist yet.
    """

    exists: bool = False
    file_okay: bool = True
    dir_okay: bool = True

    ext: tuple[str, ...] = field(default=(), converter=_extensions)
    """Allowed extensions, case insensitive, with or without the leading ``.``."""

    def __attrs_post_init__(self):
        if self.exists and not (self.file_okay or self.dir_okay):
            raise ValueError("exists=True cannot be combined with file_okay=False and dir_okay=False.")

    def _check_extension(self, path: pathlib.Path):
        if not self.ext or path.suffix.lower().lstrip(".") in self.ext:
            return
        expected = ", ".join(f'".{e}"' for e in self.ext)
        raise ValueError(f'"{path}" must have one of the extensions {expected}.')

    def __call__(self, type_: Any, path: Any):
        if not isinstance(path, pathlib.Path):
            return

        self._check_extension(path)

        if not path.exists():
            if self.exists:
                raise ValueError(f'"{path}" does not exist.')
            return

        kind, allowed = ("file", self.file_okay) if path.is_file() else ("directory", self.dir_okay)
        if allowed:
            return
        if not (self.file_okay or self.dir_okay):
            raise ValueError(f'"{path}" already exists.')
        raise ValueError(f'"{path}" must not be a {kind}.')
