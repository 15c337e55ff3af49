"""Mirror public FotoBilder-style galleries and pictures to local storage."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fotomirror")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"
